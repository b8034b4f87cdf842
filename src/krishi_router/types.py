"""Data types shared by the router, backends and daemon."""
from dataclasses import dataclass, field, fields
from enum import Enum

from . import config

STRATEGIC = "strategic"


class Provider(str, Enum):
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    GLM = "glm"
    OLLAMA = "ollama"
    QWEN_HF = "qwen_hf"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value) -> "Provider":
        """Unknown or empty preferences fall through to the default (Gemini) branch."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.GEMINI


@dataclass(frozen=True)
class RouteRequest:
    """One user prompt, optionally with an image (base64 or data URL)."""
    prompt: str
    image: str | None = None
    language: str = config.DEFAULT_LANGUAGE
    provider: Provider | str = Provider.GEMINI
    strategy: str = "default"
    crop: str | None = None

    @property
    def is_strategic(self) -> bool:
        return self.strategy == STRATEGIC


@dataclass
class RouteResult:
    """Answer text plus a human-readable label of the backend that produced it."""
    text: str
    source: str

    def to_dict(self) -> dict:
        return {"text": self.text, "source": self.source}


@dataclass(frozen=True)
class CredentialSet:
    """Caller-supplied keys. Missing values are detected when a provider is called."""
    openai: str | None = None
    deepseek: str | None = None
    glm: str | None = None
    ollama_endpoint: str | None = None
    huggingface: str | None = None
    gemini: str | None = None

    @classmethod
    def from_mapping(cls, data: dict | None) -> "CredentialSet":
        data = data or {}
        if not isinstance(data, dict):
            raise TypeError(f"credentials must be a mapping, not {type(data).__name__}")
        aliases = {"ollamaEndpoint": "ollama_endpoint", "hf": "huggingface", "hfToken": "huggingface"}
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name in known and value:
                values[name] = str(value).strip() or None
        return cls(**values)

    def key_for(self, provider: Provider) -> str | None:
        return {
            Provider.OPENAI: self.openai,
            Provider.DEEPSEEK: self.deepseek,
            Provider.GLM: self.glm,
        }.get(provider)

    @property
    def hf_token(self) -> str:
        return self.huggingface or config.HF_TOKEN

    @property
    def gemini_key(self) -> str:
        return self.gemini or config.GEMINI_API_KEY


@dataclass
class AnalysisResult:
    """Grounded multimodal analysis of a crop image."""
    diagnosis: str
    full_text: str
    official_source: str = "BARI/BRRI/DAE Grounded"
    grounding_chunks: list = field(default_factory=list)


@dataclass
class SearchResult:
    text: str
    grounding_chunks: list = field(default_factory=list)


@dataclass
class DiseaseScore:
    label: str
    score: float
