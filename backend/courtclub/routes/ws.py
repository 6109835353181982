from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from courtclub.services.push_service import get_push_service

router = APIRouter()


@router.websocket("/ws/{member_id}")
async def member_socket(websocket: WebSocket, member_id: int):
    """Push channel for one member: notifications plus calendar/match broadcasts."""
    manager = get_push_service().manager
    await manager.connect(member_id, websocket)
    try:
        while True:
            # Clients only listen; incoming frames are keep-alives
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(member_id, websocket)
