# Fichier: studyflow/backend/app/core/ai_service.py

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from openai import OpenAI
from sqlalchemy.orm import Session

from app.core import prompt_manager
from app.core.config import settings
from app.core.exceptions import MaterialEmptyError, StudyFlowError
from app.core.retry import classify_llm_error, retry_with_backoff
from app.models.analytics.ai_token_log_model import AITokenLog
from app.models.user.user_model import User
from app.utils.json_utils import extract_json_object

logger = logging.getLogger(__name__)

# USD per million tokens.
MODEL_PRICING = {
    "gemini/gemini-2.5-flash": {"input": 0.30, "output": 2.50},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
}

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 0.9
DEFAULT_MAX_TOKENS = 4000

MAX_QUIZ_QUESTIONS = 10
MAX_MATERIAL_QUIZ_QUESTIONS = 8
MODULE_EXCERPT_CHARS = 3000
TUTOR_HISTORY_TURNS = 10

if settings.LLM_API_KEY:
    openai_client = OpenAI(
        api_key=settings.LLM_API_KEY,
        base_url=settings.LLM_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=0,
    )
    logger.info("LLM client configured for model %s.", settings.LLM_MODEL)
else:
    openai_client = None
    logger.warning("LLM_API_KEY is missing. AI features will fail until it is set.")


def _complete(system_prompt: str, user_prompt: str, *, temperature: float, max_tokens: int):
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
    return openai_client.chat.completions.create(
        model=settings.LLM_MODEL,
        messages=messages,
        temperature=temperature,
        top_p=DEFAULT_TOP_P,
        max_tokens=max_tokens,
    )


def call_ai_and_log(
    db: Session,
    user: User,
    *,
    system_prompt: str,
    user_prompt: str,
    feature_name: str,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> str:
    """Run one chat completion with retries and record its token usage.

    Returns the raw text of the first choice. Quota exhaustion surfaces as
    ``QuotaExceededError``; other upstream errors propagate unchanged.
    """
    logger.info("AI call '%s' for user %s", feature_name, user.id)
    if openai_client is None:
        raise StudyFlowError("The AI service is not configured", status_code=503)
    response = retry_with_backoff(
        lambda: _complete(system_prompt, user_prompt, temperature=temperature, max_tokens=max_tokens),
        classify_llm_error,
        max_attempts=settings.LLM_MAX_ATTEMPTS,
        base_delay=settings.LLM_RETRY_BASE_DELAY_SECONDS,
    )

    content = ""
    if response.choices:
        content = response.choices[0].message.content or ""

    usage = getattr(response, "usage", None)
    prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
    completion_tokens = getattr(usage, "completion_tokens", 0) or 0
    cost = 0.0
    if settings.LLM_MODEL in MODEL_PRICING:
        prices = MODEL_PRICING[settings.LLM_MODEL]
        cost = ((prompt_tokens / 1_000_000) * prices["input"]) + ((completion_tokens / 1_000_000) * prices["output"])

    db.add(
        AITokenLog(
            user_id=user.id,
            feature=feature_name,
            model_name=settings.LLM_MODEL,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_usd=cost,
        )
    )
    db.commit()
    return content


# --- Nettoyage du contenu généré ---

_QUIZ_WORDS = r"\b(?:quiz|pertanyaan|jawaban|test|soal)\b"
_QUIZ_BLOCK_RES = [
    re.compile(rf"<({tag})\b[^>]*>(?:(?!</\1>).)*?{_QUIZ_WORDS}(?:(?!</\1>).)*?</\1>", re.IGNORECASE | re.DOTALL)
    for tag in ("h[1-6]", "div", "p", "ul", "ol")
]
_ZERO_WIDTH_RE = re.compile(r"[\u200b-\u200d\ufeff\u00ad]")
_DECORATIVE_RE = re.compile(r"[\u2122\u00ae\u00a9\u266a\u266b\u2606\u2605\u2666\u2663\u2660\u2665]")
_NON_ASCII_RE = re.compile(r"[^\x20-\x7e\n\r\t]")


def clean_generated_content(content: str) -> str:
    """Strip quiz leftovers and stray symbols from generated lessons and replies."""
    if not content:
        return ""

    is_html = "<" in content and ">" in content
    if is_html:
        for pattern in _QUIZ_BLOCK_RES:
            content = pattern.sub("", content)
        content = _DECORATIVE_RE.sub("", content)

    content = _ZERO_WIDTH_RE.sub("", content)
    if not is_html:
        content = _NON_ASCII_RE.sub("", content)
    content = re.sub(r" {2,}", " ", content)
    content = re.sub(r"\n{3,}", "\n\n", content)
    return content.strip()


def _truncate_material(text: Optional[str], max_chars: int) -> str:
    trimmed = (text or "")[:max_chars]
    if not trimmed.strip():
        raise MaterialEmptyError()
    return trimmed


def _persona_block(persona: Dict[str, Any]) -> str:
    return (
        f"- Learning style: {persona.get('learning_style')}\n"
        f"- Learning pace: {persona.get('learning_pace')}\n"
        f"- Focus level: {persona.get('focus_level')}\n"
        f"- Preferred time: {persona.get('preferred_time')}\n"
        f"- Preferred duration: {persona.get('preferred_duration')} minutes\n"
        f"- Detail level: {persona.get('detail_level')}\n"
        f"- Motivation type: {persona.get('motivation_type')}"
    )


# --- Persona ---

def analyze_learning_style(db: Session, user: User, onboarding_data: Dict[str, Any]) -> Dict[str, Any]:
    system_prompt = prompt_manager.get_prompt("persona.style_analyzer", ensure_json=True)
    user_prompt = (
        "Onboarding answers:\n"
        f"{json.dumps(onboarding_data, ensure_ascii=False, indent=2)}\n\n"
        "Analyse them and answer with the requested JSON."
    )
    raw = call_ai_and_log(
        db, user, system_prompt=system_prompt, user_prompt=user_prompt, feature_name="persona_analysis"
    )
    return extract_json_object(raw).unwrap()


def suggest_persona_update(
    db: Session, user: User, persona: Dict[str, Any], progress_rows: List[Dict[str, Any]]
) -> Dict[str, Any]:
    system_prompt = prompt_manager.get_prompt("persona.adapter", ensure_json=True)
    user_prompt = (
        f"Current persona:\n{json.dumps(persona, ensure_ascii=False, indent=2)}\n\n"
        f"Latest progress records:\n{json.dumps(progress_rows, ensure_ascii=False, indent=2, default=str)}"
    )
    raw = call_ai_and_log(
        db, user, system_prompt=system_prompt, user_prompt=user_prompt, feature_name="persona_adaptation"
    )
    extraction = extract_json_object(raw)
    if not extraction.ok:
        logger.warning("Persona adaptation answer unusable (%s); keeping persona.", extraction.error.value)
        return {"needs_update": False}
    return extraction.value


# --- Study plans ---

def generate_study_plan(
    db: Session,
    user: User,
    persona: Dict[str, Any],
    subject: str,
    topic: str,
    difficulty: str,
) -> Dict[str, Any]:
    system_prompt = prompt_manager.get_prompt("study.plan_generator", ensure_json=True)
    user_prompt = (
        f"Learner persona:\n{json.dumps(persona, ensure_ascii=False, indent=2)}\n\n"
        f"Subject: {subject}\nTopic: {topic}\nDifficulty: {difficulty}\n\n"
        "Build a personal and realistic study plan in the requested JSON format."
    )
    raw = call_ai_and_log(
        db, user, system_prompt=system_prompt, user_prompt=user_prompt, feature_name="study_plan"
    )
    return extract_json_object(raw, required_array="schedule").unwrap()


def generate_study_plan_from_material(
    db: Session,
    user: User,
    persona: Dict[str, Any],
    subject: str,
    topic: Optional[str],
    material_text: str,
    difficulty: str,
    preferences: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    max_chars = settings.MATERIAL_MAX_CHARS
    material = _truncate_material(material_text, max_chars)
    preferences = preferences or {}

    system_prompt = prompt_manager.get_prompt("study.plan_generator", ensure_json=True)
    user_prompt = f"""Learner persona:
{json.dumps(persona, ensure_ascii=False, indent=2)}

Optional preferences from the user:
- Learning goal: {preferences.get("learning_goal") or "-"}
- Preferred format: {preferences.get("preferred_format") or "-"}
- Detail level: {preferences.get("detail_level") or "-"}
- Focus keywords: {preferences.get("focus_keywords") or "-"}

Subject: {subject}
Topic: {topic or subject}
Difficulty: {difficulty}

Lecturer material (extracted text, cut at {max_chars} characters):
{material}

Build the plan in the usual JSON format, but:
- focus on the material above;
- add review and quiz slots to revisit it;
- mark unclear parts of the material as "needs clarification";
- keep the total duration and schedule realistic for the persona;
- prioritise the learning goal and focus keywords when given."""
    raw = call_ai_and_log(
        db,
        user,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        feature_name="study_plan_material",
        temperature=0.55,
        max_tokens=3500,
    )
    return extract_json_object(raw, required_array="schedule").unwrap()


# --- Modules & quiz ---

def generate_module_content(
    db: Session, user: User, persona: Dict[str, Any], topic: str, module_type: str = "core"
) -> str:
    system_prompt = prompt_manager.get_prompt("study.module_content")
    user_prompt = (
        f"Learner persona:\n{_persona_block(persona)}\n\n"
        f"Topic: {topic}\nModule type: {module_type}\n\n"
        "Write a lesson that strongly adapts to the learning style above."
    )
    content = call_ai_and_log(
        db,
        user,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        feature_name="module_content",
        temperature=0.8,
        max_tokens=6000,
    )
    return clean_generated_content(content)


def _quiz_persona_context(persona: Optional[Dict[str, Any]]) -> str:
    if not persona:
        return ""
    return (
        "Learner persona:\n"
        f"- Learning style: {persona.get('learning_style')}\n"
        f"- Detail level: {persona.get('detail_level')}\n"
        f"- Learning pace: {persona.get('learning_pace')}\n"
        "Adapt the quiz style to these preferences.\n\n"
    )


def generate_quiz(
    db: Session,
    user: User,
    topic: str,
    difficulty: str,
    question_count: int = 35,
    persona: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    count = min(question_count, MAX_QUIZ_QUESTIONS)
    system_prompt = prompt_manager.get_prompt("study.quiz_generator", ensure_json=True)
    user_prompt = (
        f"{_quiz_persona_context(persona)}"
        f"Topic: {topic}\nDifficulty: {difficulty}\nNumber of questions: {count}\n\n"
        f"Generate EXACTLY {count} detailed, contextual questions with complete explanations."
    )
    raw = call_ai_and_log(
        db,
        user,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        feature_name="quiz",
        temperature=0.3,
        max_tokens=8000,
    )
    quiz = extract_json_object(raw, required_array="questions").unwrap()
    logger.info("Quiz generated for '%s' with %s questions", topic, len(quiz["questions"]))
    return quiz


def generate_quiz_from_material(
    db: Session,
    user: User,
    material_text: str,
    topic: str,
    difficulty: str,
    question_count: int = 15,
    persona: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    count = min(question_count, MAX_MATERIAL_QUIZ_QUESTIONS)
    max_chars = settings.MATERIAL_QUIZ_MAX_CHARS
    material = _truncate_material(material_text, max_chars)

    system_prompt = prompt_manager.get_prompt("study.quiz_generator", ensure_json=True)
    user_prompt = (
        f"{_quiz_persona_context(persona)}"
        f"Lecturer material (extracted text, cut at {max_chars} characters):\n{material}\n\n"
        f"Topic: {topic}\nDifficulty: {difficulty}\nNumber of questions: {count}\n\n"
        f"Ask ONLY about the material above and generate EXACTLY {count} questions."
    )
    raw = call_ai_and_log(
        db,
        user,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        feature_name="quiz_material",
        temperature=0.3,
        max_tokens=8000,
    )
    return extract_json_object(raw, required_array="questions").unwrap()


def explain_mistake(
    db: Session,
    user: User,
    module_content: str,
    question: str,
    user_answer: Any,
    correct_answer: Any,
) -> str:
    system_prompt = prompt_manager.get_prompt("study.mistake_explainer")
    user_prompt = (
        f"Lesson material (excerpt):\n{(module_content or '')[:MODULE_EXCERPT_CHARS]}\n\n"
        f"Question: {question}\nUser answer: {user_answer}\nCorrect answer: {correct_answer}\n\n"
        "Explain briefly, referring to the material above."
    )
    explanation = call_ai_and_log(
        db,
        user,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        feature_name="mistake_explanation",
        temperature=0.5,
        max_tokens=800,
    )
    return clean_generated_content(explanation)


# --- Tuteur ---

def resolve_daypart(hour: int) -> str:
    """Map a local hour to the greeting period used by the tutor."""
    if 5 <= hour < 11:
        return "pagi"
    if 11 <= hour < 15:
        return "siang"
    if 15 <= hour < 18:
        return "sore"
    return "malam"


def _time_context(user_time_meta: Optional[Dict[str, Any]]) -> str:
    meta = user_time_meta or {}
    lines = []

    local_time = None
    raw_time = meta.get("local_time_iso")
    if isinstance(raw_time, str) and raw_time.strip():
        try:
            local_time = datetime.fromisoformat(raw_time.strip().replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparseable local_time_iso: %r", raw_time)

    if local_time is not None:
        lines.append(
            f"The user's local time is {local_time:%H:%M} ({resolve_daypart(local_time.hour)}). "
            "Match your greeting to this period and do not mention any other."
        )
    else:
        lines.append("The user's local time is unknown: use a neutral greeting without mentioning the time of day.")

    if meta.get("timezone"):
        lines.append(f"User timezone: {meta['timezone']}")
    offset = meta.get("offset_minutes")
    if isinstance(offset, (int, float)) and not isinstance(offset, bool):
        lines.append(f"Offset from UTC in minutes: {offset}")
    return "\n".join(lines)


def chat_with_tutor(
    db: Session,
    user: User,
    message: str,
    persona: Dict[str, Any],
    history: Optional[List[Dict[str, str]]] = None,
    user_time_meta: Optional[Dict[str, Any]] = None,
) -> str:
    history = (history or [])[-TUTOR_HISTORY_TURNS:]
    history_block = ""
    if history:
        turns = "\n".join(f"{turn['role']}: {turn['message']}" for turn in history)
        history_block = f"\n\nConversation so far:\n{turns}"

    system_prompt = prompt_manager.get_prompt("tutor.chat")
    user_prompt = (
        f"Learner persona:\n{_persona_block(persona)}{history_block}\n\n"
        f"{_time_context(user_time_meta)}\n\n"
        f"The user asks: {message}\n\n"
        "Answer in your tutor style, adapted to the persona above."
    )
    reply = call_ai_and_log(
        db,
        user,
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        feature_name="tutor_chat",
        temperature=0.72,
        max_tokens=3500,
    )
    return clean_generated_content(reply)


# --- Analytics ---

def analyze_progress(
    db: Session, user: User, persona: Dict[str, Any], progress_rows: List[Dict[str, Any]]
) -> Dict[str, Any]:
    system_prompt = prompt_manager.get_prompt("analytics.progress_analyzer", ensure_json=True)
    user_prompt = (
        f"Learner persona:\n{json.dumps(persona, ensure_ascii=False, indent=2)}\n\n"
        f"Progress records (last 30 days):\n{json.dumps(progress_rows, ensure_ascii=False, indent=2, default=str)}\n\n"
        "Analyse them and answer with the requested JSON."
    )
    raw = call_ai_and_log(
        db, user, system_prompt=system_prompt, user_prompt=user_prompt, feature_name="progress_analysis"
    )
    analysis = extract_json_object(raw).unwrap()
    if not isinstance(analysis.get("insights"), list):
        analysis["insights"] = []
    return analysis


def generate_motivation(db: Session, user: User, persona: Dict[str, Any], progress_summary: str) -> str:
    system_prompt = prompt_manager.get_prompt("analytics.motivation")
    user_prompt = (
        f"Learner persona:\n- Motivation type: {persona.get('motivation_type')}\n"
        f"- Focus level: {persona.get('focus_level')}\n\n"
        f"Progress summary:\n{progress_summary}"
    )
    message = call_ai_and_log(
        db, user, system_prompt=system_prompt, user_prompt=user_prompt, feature_name="motivation"
    )
    return clean_generated_content(message)
