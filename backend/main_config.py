import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROMPTS_DIR = os.path.join(BASE_DIR, "prompts")
WIZARD_SYSTEM_PROMPT_PATH = os.path.join(PROMPTS_DIR, "wizard_system_prompt.md")

# Store: "redis://..." for Redis, "memory://" for the in-process backend
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")

# Auth
RUNNER_KEY = os.getenv("RUNNER_KEY", "")

# Providers
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "openai-assistant")
ENABLED_PROVIDERS = [
    p.strip()
    for p in os.getenv("ENABLED_PROVIDERS", "openai-assistant,openai-responses,ollama,wizard").split(",")
    if p.strip()
]
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_RESPONSES_MODEL = os.getenv("OPENAI_RESPONSES_MODEL", "gpt-4.1")
OPENAI_PROMPT_ID = os.getenv("OPENAI_PROMPT_ID") or None
OPENAI_EVALUATION_MODEL = os.getenv("OPENAI_EVALUATION_MODEL", "gpt-4o")
OPENAI_STRUCTURED_MODEL = os.getenv("OPENAI_STRUCTURED_MODEL", "gpt-4o-2024-08-06")
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "gemma3:1b")

# Designer catalog
DESIGNER_BACKEND_URL = os.getenv("DESIGNER_BACKEND_URL", "http://localhost:8080")
CATALOG_API_KEY = os.getenv("CATALOG_API_KEY", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
