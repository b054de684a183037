from __future__ import annotations

import json
import logging
import random
from pathlib import Path


logger = logging.getLogger(__name__)

DEFAULT_PROMPTS = ["Apple", "House", "Star", "Tree"]


def load_prompts(path: str | Path | None) -> list[str]:
    if not path:
        return list(DEFAULT_PROMPTS)

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("could not load prompts from %s: %s", path, exc)
        return list(DEFAULT_PROMPTS)

    if not isinstance(raw, list):
        logger.error("prompts file %s is not a JSON array", path)
        return list(DEFAULT_PROMPTS)

    prompts = [p.strip() for p in raw if isinstance(p, str) and p.strip()]
    if not prompts:
        logger.warning("prompts file %s has no usable prompts, using defaults", path)
        return list(DEFAULT_PROMPTS)

    logger.info("loaded %d prompts", len(prompts))
    return prompts


def pick_prompt(prompts: list[str], rng: random.Random | None = None) -> str:
    # Uniform with replacement; repeats across rounds are allowed.
    return (rng or random).choice(prompts or DEFAULT_PROMPTS)
