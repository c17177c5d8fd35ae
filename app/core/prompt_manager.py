# Fichier : studyflow/backend/app/core/prompt_manager.py

import os
import re
from functools import lru_cache
from typing import Any, Dict

from app.core.config import settings

# --- Emplacement des prompts .md ---
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PROMPTS_DIR = os.path.join(BASE_DIR, 'prompts')

# --- Regex pour {{ var }} et {{ var|default(...) }} ---
PLACEHOLDER_RE = re.compile(r"{{\s*([a-zA-Z_][\w\.]*)\s*(?:\|default\(([^)]*)\))?\s*}}")


def _global_defaults() -> Dict[str, Any]:
    return {"response_language": settings.RESPONSE_LANGUAGE}


def _coerce_literal(s: str) -> Any:
    """Transforme 'true'/'false'/nombre/'null' en littéraux Python; sinon string sans guillemets."""
    t = s.strip()
    if t.lower() in ("true", "false"):
        return t.lower() == "true"
    if t.lower() == "null":
        return None
    try:
        if "." in t:
            return float(t)
        return int(t)
    except ValueError:
        pass
    if (t.startswith("'") and t.endswith("'")) or (t.startswith('"') and t.endswith('"')):
        return t[1:-1]
    return t


def _lookup(context: Dict[str, Any], dotted: str) -> Any:
    """Looks up a dotted path in a nested context of dicts and objects."""
    cur: Any = context
    for part in dotted.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur[part]
        elif not isinstance(cur, dict) and hasattr(cur, part):
            cur = getattr(cur, part)
        else:
            return None
    return cur


def render_template(template: str, context: Dict[str, Any]) -> str:
    def repl(m: re.Match) -> str:
        val = _lookup(context, m.group(1))
        default_raw = m.group(2)

        if (val is None or val == "") and default_raw is not None:
            val = _coerce_literal(default_raw)

        if isinstance(val, bool):
            return "true" if val else "false"
        if val is None:
            return "null"
        return str(val)

    return PLACEHOLDER_RE.sub(repl, template)


JSON_GUARDRAIL = (
    "\n\n[OUTPUT CONSTRAINT]\n"
    "- Answer with ONE valid JSON object only.\n"
    "- No backticks, no text outside the JSON."
)


@lru_cache(maxsize=64)
def get_prompt_template(path: str) -> str:
    """Charge un modèle de prompt depuis un fichier .md (``tutor.chat`` -> prompts/tutor/chat.md)."""
    parts = path.split('.')
    full_path = os.path.join(PROMPTS_DIR, *parts[:-1], f"{parts[-1]}.md")
    with open(full_path, 'r', encoding='utf-8') as f:
        return f.read()


def get_prompt(path: str, ensure_json: bool = False, **kwargs) -> str:
    """
    Récupère un template et injecte variables + défauts.
    - Supporte {{ var }} et {{ var|default(...) }}.
    - ensure_json ajoute une garde 'JSON only'.
    """
    context = _global_defaults()
    context.update(kwargs)

    rendered = render_template(get_prompt_template(path), context)
    if ensure_json:
        rendered = rendered + JSON_GUARDRAIL
    return rendered
