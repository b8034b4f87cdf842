"""Configuration for krishi-router."""
from pathlib import Path
from dotenv import load_dotenv
import os

load_dotenv()  # loads .env from project root (or cwd) if present


def _secret(*names: str) -> str:
    """First non-empty env value among names. Build tools sometimes inject the literal strings "undefined"/"null"."""
    for name in names:
        value = os.environ.get(name, "").strip()
        if value and value not in ("undefined", "null"):
            return value
    return ""


# Paths
DATA_DIR = Path(os.environ.get("KR_DATA_DIR", Path.home() / ".krishi-router"))
LOG_DIR = DATA_DIR / "logs"

# Daemon
DAEMON_HOST = os.environ.get("KR_DAEMON_HOST", "127.0.0.1")
DAEMON_PORT = int(os.environ.get("KR_DAEMON_PORT", "8000"))
DEBUG = os.environ.get("KR_DEBUG", "0") in ("1", "true", "yes")

# Language used when a request does not name one
DEFAULT_LANGUAGE = os.environ.get("KR_DEFAULT_LANGUAGE", "bn")

# Hugging Face inference (Qwen2.5-VL first-pass triage). No default token: unset means the backend is skipped.
HF_TOKEN = _secret("HF_TOKEN")
HF_INFERENCE_URL = os.environ.get("KR_HF_INFERENCE_URL", "https://api-inference.huggingface.co/models")
HF_VISION_MODEL = os.environ.get("KR_HF_VISION_MODEL", "Qwen/Qwen2.5-VL-7B-Instruct")
HF_INSIGHT_MODEL = os.environ.get("KR_HF_INSIGHT_MODEL", "mistralai/Mistral-7B-Instruct-v0.3")
HF_CLASSIFIER_MODEL = os.environ.get("KR_HF_CLASSIFIER_MODEL", "linkv/plant-disease-classification")
HF_TIMEOUT = float(os.environ.get("KR_HF_TIMEOUT", "120"))

# Google Gemini (grounded search + multimodal analysis)
GEMINI_API_KEY = _secret("GEMINI_API_KEY", "API_KEY")
GEMINI_URL = os.environ.get("KR_GEMINI_URL", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_MODEL = os.environ.get("KR_GEMINI_MODEL", "gemini-3-flash-preview")
GEMINI_TIMEOUT = float(os.environ.get("KR_GEMINI_TIMEOUT", "120"))

# OpenAI-compatible chat completion providers (keys are supplied per request by the caller)
OPENAI_URL = os.environ.get("KR_OPENAI_URL", "https://api.openai.com/v1/chat/completions")
OPENAI_MODEL = os.environ.get("KR_OPENAI_MODEL", "gpt-4o-mini")
DEEPSEEK_URL = os.environ.get("KR_DEEPSEEK_URL", "https://api.deepseek.com/chat/completions")
DEEPSEEK_MODEL = os.environ.get("KR_DEEPSEEK_MODEL", "deepseek-chat")
GLM_URL = os.environ.get("KR_GLM_URL", "https://open.bigmodel.cn/api/paas/v4/chat/completions")
GLM_MODEL = os.environ.get("KR_GLM_MODEL", "glm-4")
CHAT_TEMPERATURE = float(os.environ.get("KR_CHAT_TEMPERATURE", "0.2"))
CHAT_TIMEOUT = float(os.environ.get("KR_CHAT_TIMEOUT", "60"))

# Ollama (local model serving)
OLLAMA_URL = os.environ.get("OLLAMA_URL", "http://localhost:11434")
OLLAMA_MODEL = os.environ.get("KR_OLLAMA_MODEL", "llama3")
OLLAMA_TIMEOUT = float(os.environ.get("KR_OLLAMA_TIMEOUT", "180"))

# Supabase report persistence. Both must be set, otherwise the store is disabled.
SUPABASE_URL = _secret("SUPABASE_URL")
SUPABASE_KEY = _secret("SUPABASE_KEY")


def ensure_data_dir():
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
