
import asyncio
import websockets
import json

async def main(topic: str = 'demo-physical-adapter/*'):
    async with websockets.connect('ws://localhost:8080/ws') as ws:
        await ws.send(json.dumps({'action': 'subscribe', 'topic': topic}))
        print(await ws.recv())
        while True:
            await ws.send(json.dumps({'action': 'poll'}))
            msg = json.loads(await ws.recv())
            for entry in msg.get('data', []):
                print(entry['seq'], entry['topic'], json.dumps(entry['payload']))
            await asyncio.sleep(0.5)

if __name__ == '__main__':
    asyncio.run(main())
