from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict[str, object]:
    hub = request.app.state.realtime
    return {
        "status": "ok",
        "online_principals": hub.registry.online_count(),
        "total_connections": hub.registry.total_connections(),
    }
