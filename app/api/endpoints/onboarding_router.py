from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_db
from app.crud import persona_crud
from app.models.user.user_model import User
from app.schemas.persona.persona_schema import LearningPersonaOut, OnboardingResponsesRequest
from app.services import persona_service

router = APIRouter()


@router.post("/responses")
def save_responses(
    payload: OnboardingResponsesRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = persona_crud.save_onboarding_responses(
        db, current_user.id, ((item.question_id, item.answer) for item in payload.responses)
    )
    return {"message": "Onboarding responses saved", "count": count}


@router.post("/generate-persona")
def generate_persona(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    persona = persona_service.generate_persona(db, current_user)
    return {"message": "Learning persona generated", "persona": LearningPersonaOut.model_validate(persona)}


@router.get("/persona", response_model=LearningPersonaOut)
def read_persona(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    persona = persona_crud.get_persona(db, current_user.id)
    if persona is None:
        raise HTTPException(status_code=404, detail="Learning persona not found")
    return persona


@router.get("/status")
def onboarding_status(current_user: User = Depends(get_current_user)):
    return {"onboarding_completed": bool(current_user.onboarding_completed)}


@router.post("/persona/adapt")
def adapt_persona(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return persona_service.adapt_persona(db, current_user)
