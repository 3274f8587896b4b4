"""Question pool loaded from a JSON file."""

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError

from app.config import settings
from app.models.training import Question

logger = logging.getLogger(__name__)


def load_questions(path: str | Path) -> list[Question]:
    """Parse a JSON list of questions, skipping malformed entries.

    A missing or unreadable file yields an empty pool.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning(f"Question bank not found: {path}")
        return []
    except (json.JSONDecodeError, OSError) as e:
        logger.error(f"Could not read question bank {path}: {e}")
        return []

    if not isinstance(raw, list):
        logger.error(f"Question bank {path} must be a JSON list")
        return []

    questions = []
    for i, item in enumerate(raw):
        try:
            questions.append(Question.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping question #{i} in {path}: {e.error_count()} validation error(s)")
    logger.info(f"Loaded {len(questions)} questions from {path}")
    return questions


@lru_cache(maxsize=1)
def get_question_pool() -> tuple[Question, ...]:
    return tuple(load_questions(settings.question_bank_path))
