
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from ..core.adapter_manager import manager

router = APIRouter()

@router.websocket('/ws')
async def ws_endpoint(ws: WebSocket):
    await ws.accept()
    try:
        subscriptions: set[str] = set()
        # only messages published after the client connected are delivered
        history = manager.bus.history(limit=1)
        last_seq = history[-1]['seq'] if history else 0
        while True:
            msg = await ws.receive_json()
            action = msg.get('action')

            if action == 'subscribe':
                topic = msg.get('topic')
                if not isinstance(topic, str) or not topic:
                    await ws.send_json({'type': 'error', 'error': 'topic must be a non-empty string'})
                    continue
                subscriptions.add(topic)
                await ws.send_json({'type': 'subscribed', 'topic': topic})

            elif action == 'unsubscribe':
                subscriptions.discard(msg.get('topic'))
                await ws.send_json({'type': 'unsubscribed', 'topic': msg.get('topic')})

            elif action == 'poll':
                entries = manager.bus.history(limit=0, after_seq=last_seq)
                if entries:
                    last_seq = entries[-1]['seq']
                out = [
                    e for e in entries
                    if any(manager.bus.matches(e['topic'], pattern) for pattern in subscriptions)
                ]
                await ws.send_json({'type': 'poll-result', 'data': out})

            else:
                await ws.send_json({'type': 'error', 'error': 'unknown action'})
    except WebSocketDisconnect:
        return
