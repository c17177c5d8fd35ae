# Fichier: studyflow/backend/app/db/base_class.py
from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """Base declarative class shared by every StudyFlow model."""
