"""Déclare l'ensemble des modèles SQLAlchemy pour la création du schéma au démarrage."""

from app.db.base_class import Base

# Utilisateurs & onboarding
from app.models.user.user_model import User
from app.models.persona.learning_persona_model import LearningPersona, OnboardingResponse

# Plans d'étude
from app.models.study.study_plan_model import LearningModule, LearningSession, StudyPlan

# Progression
from app.models.progress.learning_progress_model import LearningProgress, QuizResult

# Chat & analytics
from app.models.chat.conversation_model import ConversationTurn
from app.models.analytics.insight_model import Insight
from app.models.analytics.ai_token_log_model import AITokenLog

__all__ = (
    "Base",
    "User",
    "LearningPersona",
    "OnboardingResponse",
    "StudyPlan",
    "LearningModule",
    "LearningSession",
    "LearningProgress",
    "QuizResult",
    "ConversationTurn",
    "Insight",
    "AITokenLog",
)
