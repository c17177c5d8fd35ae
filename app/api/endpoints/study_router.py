# Fichier: studyflow/backend/app/api/endpoints/study_router.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_db
from app.models.user.user_model import User
from app.schemas.study import study_schema
from app.services import learning_session_service
from app.services.quiz_service import QuizService
from app.services.study_plan_service import StudyPlanService

router = APIRouter()


# --- Plans ---

@router.post("/plans", status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: study_schema.CreatePlanRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return StudyPlanService(db, current_user).create_from_topic(payload.subject, payload.topic, payload.difficulty)


@router.post("/plans/from-material", status_code=status.HTTP_201_CREATED)
def create_plan_from_material(
    payload: study_schema.CreatePlanFromMaterialRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return StudyPlanService(db, current_user).create_from_material(payload)


@router.get("/plans")
def list_plans(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"plans": StudyPlanService(db, current_user).list_plans()}


@router.post("/plans/fix-dates")
def fix_plan_dates(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return StudyPlanService(db, current_user).fix_dates()


@router.get("/plans/{plan_id}")
def read_plan(plan_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return StudyPlanService(db, current_user).get_plan_detail(plan_id)


@router.put("/plans/{plan_id}/target-date")
def update_target_date(
    plan_id: int,
    payload: study_schema.TargetDateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return StudyPlanService(db, current_user).update_target_date(plan_id, payload.target_days)


@router.delete("/plans/{plan_id}")
def delete_plan(plan_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    StudyPlanService(db, current_user).delete_plan(plan_id)
    return {"message": "Study plan deleted"}


# --- Modules ---

@router.post("/modules/generate-content")
def generate_module_content(
    payload: study_schema.GenerateContentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return StudyPlanService(db, current_user).get_module_content(payload.plan_id, payload.module_order, payload.topic)


@router.delete("/modules/{module_id}")
def delete_module(module_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    StudyPlanService(db, current_user).delete_module(module_id)
    return {"message": "Module deleted"}


# --- Quiz ---

@router.post("/quiz-results", status_code=status.HTTP_201_CREATED)
def submit_quiz_result(
    payload: study_schema.QuizSubmission,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return QuizService(db, current_user).submit(payload)


@router.get("/review-queue")
def review_queue(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"items": QuizService(db, current_user).review_queue()}


# --- Sessions ---

@router.post("/sessions")
def start_session(
    payload: study_schema.StartSessionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return learning_session_service.start_session(db, current_user, payload.plan_id)


@router.get("/sessions/active")
def read_active_session(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return learning_session_service.active_session(db, current_user)


@router.put("/sessions/{session_id}/end")
def end_session(
    session_id: int,
    payload: study_schema.EndSessionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return learning_session_service.end_session(
        db, current_user, session_id, payload.duration_minutes, payload.pomodoro_count
    )
