import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TypeAlias

from parley.prompts import CREATIVE_SUFFIX, DEEP_SUFFIX

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


def get_optional_env(name: str, default: str) -> str:
    return os.environ.get(name) or default


class ModelId(str, Enum):
    FLASH = "flash"
    PRO = "pro"
    DEEP = "deep"
    CREATIVE = "creative"
    IMAGINE = "imagine"


DEFAULT_MODEL_ID = ModelId.FLASH

MODEL_LABELS = {
    ModelId.FLASH: "Flash - fast, efficient, everyday tasks",
    ModelId.PRO: "Pro - complex tasks, coding, math",
    ModelId.DEEP: "Deep - deep reasoning and analysis",
    ModelId.CREATIVE: "Creative - writing, brainstorming, ideas",
    ModelId.IMAGINE: "Imagine - generate high-quality images",
}

FLASH_MODEL = "gemini/gemini-3-flash-preview"
PRO_MODEL = "gemini/gemini-3-pro-preview"
IMAGE_MODEL = "gemini/gemini-3-pro-image-preview"

ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")
IMAGE_STYLES = (
    "Photorealistic",
    "Anime",
    "Digital Art",
    "Oil Painting",
    "Watercolor",
    "Sketch",
    "3D Render",
    "Cyberpunk",
    "Steampunk",
)


def parse_model_id(value: str) -> ModelId:
    try:
        return ModelId(value.strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in ModelId)
        raise ConfigError(f"Unknown model '{value}' (choose from: {choices})") from None


@dataclass
class ImageGenConfig:
    aspect_ratio: str = "1:1"
    style: str | None = None
    negative_prompt: str | None = None

    def __post_init__(self):
        if self.aspect_ratio not in ASPECT_RATIOS:
            raise ConfigError(
                f"Unsupported aspect ratio '{self.aspect_ratio}' (choose from: {', '.join(ASPECT_RATIOS)})"
            )


@dataclass(frozen=True, slots=True)
class ChatProfile:
    model: str
    temperature: float
    instruction_suffix: str = ""

    def completion_kwargs(self) -> dict:
        return {"temperature": self.temperature}


@dataclass(frozen=True, slots=True)
class ReasoningProfile:
    model: str
    thinking_budget: int
    instruction_suffix: str = ""

    def completion_kwargs(self) -> dict:
        return {"thinking": {"type": "enabled", "budget_tokens": self.thinking_budget}}


@dataclass(frozen=True, slots=True)
class CreativeProfile:
    model: str
    temperature: float
    top_p: float
    instruction_suffix: str = ""

    def completion_kwargs(self) -> dict:
        return {"temperature": self.temperature, "top_p": self.top_p}


@dataclass(frozen=True, slots=True)
class ImageProfile:
    model: str
    aspect_ratio: str

    def completion_kwargs(self) -> dict:
        return {
            "modalities": ["image", "text"],
            "imageConfig": {"aspectRatio": self.aspect_ratio},
        }


ModelProfile: TypeAlias = ChatProfile | ReasoningProfile | CreativeProfile | ImageProfile


def resolve_profile(model_id: ModelId, image_config: ImageGenConfig | None = None) -> ModelProfile:
    if model_id == ModelId.PRO:
        return ChatProfile(model=PRO_MODEL, temperature=0.5)
    if model_id == ModelId.DEEP:
        return ReasoningProfile(model=PRO_MODEL, thinking_budget=2048, instruction_suffix=DEEP_SUFFIX)
    if model_id == ModelId.CREATIVE:
        return CreativeProfile(
            model=PRO_MODEL, temperature=1.0, top_p=0.95, instruction_suffix=CREATIVE_SUFFIX
        )
    if model_id == ModelId.IMAGINE:
        aspect_ratio = image_config.aspect_ratio if image_config else "1:1"
        return ImageProfile(model=IMAGE_MODEL, aspect_ratio=aspect_ratio)
    return ChatProfile(model=FLASH_MODEL, temperature=0.7)


@dataclass
class AppConfig:
    data_dir: Path = field(
        default_factory=lambda: Path(
            get_optional_env("PARLEY_DATA_DIR", str(Path.home() / ".parley"))
        ).expanduser()
    )
    api_key_env: str = field(
        default_factory=lambda: get_optional_env("PARLEY_API_KEY_ENV", "GEMINI_API_KEY")
    )
    default_model: ModelId | None = None

    @property
    def state_path(self) -> Path:
        return self.data_dir / "state.json"

    @classmethod
    def from_env(cls, model: str | None = None) -> "AppConfig":
        config = cls()
        if model:
            config.default_model = parse_model_id(model)
        logger.debug(f"Using data directory {config.data_dir}")
        return config
