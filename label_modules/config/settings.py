"""
Environment-driven settings for the inpainting service.

Values come from the process environment (optionally seeded from a `.env` file)
and are parsed once at startup into a frozen `Settings` instance.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from typing import Optional

import dotenv

DEFAULT_LLM_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_LLM_MODEL = "gemini-1.5-flash"
DEFAULT_INPAINT_MODEL = "imagen-3.0-capability-001"
DISTANCE_POLICIES = ("model", "geometric")


@dataclass(frozen=True)
class Settings:
    # google cloud
    project_id: Optional[str] = None
    location: str = "us-central1"
    input_bucket: str = "label-inpaint-input"
    output_bucket: str = "label-inpaint-output"

    # vision-language analysis
    llm_api_key: Optional[str] = None
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    llm_model: str = DEFAULT_LLM_MODEL
    llm_min_interval_s: float = 2.0
    llm_max_retries: int = 3
    llm_backoff_base_s: float = 1.0
    llm_timeout_s: float = 30.0

    # inpainting
    inpaint_model: str = DEFAULT_INPAINT_MODEL
    inpaint_timeout_s: float = 120.0
    inpaint_sample_count: int = 4

    # detection heuristics
    fallback_proximity_px: float = 100.0
    distance_policy: str = "model"
    distance_gap_ratio: float = 1.0

    # workflow
    upload_workers: int = 4
    temp_root: str = tempfile.gettempdir()

    def __post_init__(self):
        if self.distance_policy not in DISTANCE_POLICIES:
            raise ValueError(
                f"DISTANCE_POLICY must be one of {DISTANCE_POLICIES}, got '{self.distance_policy}'."
            )
        if self.llm_max_retries < 1:
            raise ValueError("LLM_MAX_RETRIES must be at least 1.")
        if self.inpaint_sample_count < 1:
            raise ValueError("INPAINT_SAMPLE_COUNT must be at least 1.")
        if self.upload_workers < 1:
            raise ValueError("UPLOAD_WORKERS must be at least 1.")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got '{raw}'.") from e


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got '{raw}'.") from e


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment, loading `.env` first if present."""
    dotenv.load_dotenv(env_file)
    return Settings(
        project_id=os.environ.get("GOOGLE_CLOUD_PROJECT_ID"),
        location=os.environ.get("GOOGLE_CLOUD_LOCATION", "us-central1"),
        input_bucket=os.environ.get("GCS_INPUT_BUCKET", "label-inpaint-input"),
        output_bucket=os.environ.get("GCS_OUTPUT_BUCKET", "label-inpaint-output"),
        llm_api_key=os.environ.get("GEMINI_API_KEY"),
        llm_base_url=os.environ.get("VISION_LLM_BASE_URL", DEFAULT_LLM_BASE_URL),
        llm_model=os.environ.get("VISION_LLM_MODEL", DEFAULT_LLM_MODEL),
        llm_min_interval_s=_env_float("LLM_MIN_INTERVAL_S", 2.0),
        llm_max_retries=_env_int("LLM_MAX_RETRIES", 3),
        llm_backoff_base_s=_env_float("LLM_BACKOFF_BASE_S", 1.0),
        llm_timeout_s=_env_float("LLM_TIMEOUT_S", 30.0),
        inpaint_model=os.environ.get("INPAINT_MODEL", DEFAULT_INPAINT_MODEL),
        inpaint_timeout_s=_env_float("INPAINT_TIMEOUT_S", 120.0),
        inpaint_sample_count=_env_int("INPAINT_SAMPLE_COUNT", 4),
        fallback_proximity_px=_env_float("FALLBACK_PROXIMITY_PX", 100.0),
        distance_policy=os.environ.get("DISTANCE_POLICY", "model").lower(),
        distance_gap_ratio=_env_float("DISTANCE_GAP_RATIO", 1.0),
        upload_workers=_env_int("UPLOAD_WORKERS", 4),
        temp_root=os.environ.get("TEMP_ROOT", tempfile.gettempdir()),
    )
