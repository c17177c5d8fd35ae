from typing import Any, Iterable, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from app.models.analytics.insight_model import Insight, InsightPriority

_PRIORITY_RANK = case(
    (Insight.priority == InsightPriority.HIGH, 3),
    (Insight.priority == InsightPriority.MEDIUM, 2),
    else_=1,
)


def parse_priority(value: Any) -> InsightPriority:
    try:
        return InsightPriority(str(value).strip().lower())
    except ValueError:
        return InsightPriority.MEDIUM


def create_insights(db: Session, user_id: int, items: Iterable[dict[str, Any]]) -> list[Insight]:
    insights = []
    for item in items:
        if not isinstance(item, dict):
            continue
        insight = Insight(
            user_id=user_id,
            insight_type=str(item.get("type") or "general")[:50],
            title=str(item.get("title") or "Insight")[:255],
            description=str(item.get("description") or ""),
            data={"action": item.get("action")},
            priority=parse_priority(item.get("priority")),
        )
        db.add(insight)
        insights.append(insight)
    db.commit()
    for insight in insights:
        db.refresh(insight)
    return insights


def list_unread(db: Session, user_id: int) -> list[Insight]:
    return (
        db.query(Insight)
        .filter(Insight.user_id == user_id, Insight.is_read.is_(False))
        .order_by(_PRIORITY_RANK.desc(), Insight.created_at.desc(), Insight.id.desc())
        .all()
    )


def mark_read(db: Session, user_id: int, insight_id: int) -> Optional[Insight]:
    insight = db.query(Insight).filter(Insight.id == insight_id, Insight.user_id == user_id).first()
    if insight is None:
        return None
    insight.is_read = True
    db.commit()
    db.refresh(insight)
    return insight
