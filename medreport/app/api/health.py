from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health():
    """Constant-time health check; does not contact the generation endpoint."""
    return {"status": "healthy"}


@router.get("/version")
async def version():
    return {"version": "0.1.0"}
