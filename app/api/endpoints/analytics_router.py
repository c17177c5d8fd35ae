from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_db
from app.crud import insight_crud, progress_crud, quiz_crud
from app.models.user.user_model import User
from app.schemas.analytics.analytics_schema import InsightOut, ProgressCreate, QuizResultOut
from app.services import insight_service
from app.services.study_plan_service import StudyPlanService

router = APIRouter()


@router.get("/progress")
def read_progress(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    records = progress_crud.recent_progress(db, current_user.id)
    return {
        "progress": [progress_crud.serialize_progress(record) for record in records],
        "stats": progress_crud.progress_stats(db, current_user.id),
    }


@router.post("/progress", status_code=status.HTTP_201_CREATED)
def record_progress(
    payload: ProgressCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if payload.plan_id is not None:
        StudyPlanService(db, current_user).owned_plan(payload.plan_id)
    record = progress_crud.add_progress(
        db,
        user_id=current_user.id,
        plan_id=payload.plan_id,
        day=payload.day,
        duration_minutes=payload.duration_minutes,
        topic=(payload.topic or "").strip() or "Unknown Topic",
        evaluation=payload.evaluation,
        focus_score=payload.focus_score,
        mood=payload.mood,
        notes=payload.notes,
    )
    return {"message": "Progress recorded", "progress": progress_crud.serialize_progress(record)}


@router.post("/insights/generate")
def generate_insights(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return insight_service.generate_insights(db, current_user)


@router.get("/insights")
def read_insights(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"insights": [InsightOut.model_validate(i) for i in insight_crud.list_unread(db, current_user.id)]}


@router.put("/insights/{insight_id}/read")
def mark_insight_read(
    insight_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    insight = insight_crud.mark_read(db, current_user.id, insight_id)
    if insight is None:
        raise HTTPException(status_code=404, detail="Insight not found")
    return {"message": "Insight marked as read"}


@router.get("/quiz-results")
def read_quiz_results(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    results = quiz_crud.recent_quiz_results(db, current_user.id)
    return {"results": [QuizResultOut.model_validate(result) for result in results]}


@router.get("/motivation")
def read_motivation(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return insight_service.motivation_message(db, current_user)
