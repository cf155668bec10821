"""Speech-to-text endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import get_current_user_id, get_transcription_service
from ..services.transcription import TranscriptionService

router = APIRouter(prefix="/voice", tags=["voice"])


class TranscribeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_data: str = Field(..., min_length=1, alias="audioData")


@router.post("/transcribe")
async def transcribe(
    request: TranscribeRequest,
    user_id: str = Depends(get_current_user_id),
    service: TranscriptionService = Depends(get_transcription_service),
) -> dict[str, str]:
    return {"transcript": await service.transcribe(request.audio_data)}


@router.get("/token")
async def deepgram_token(
    user_id: str = Depends(get_current_user_id),
    service: TranscriptionService = Depends(get_transcription_service),
) -> dict[str, str]:
    return {"token": await service.grant_token()}
