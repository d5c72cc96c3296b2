"""Application configuration with sensible defaults."""
import os
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("POLICYQA_DATA_DIR", str(BASE_DIR / "data")))
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(DATA_DIR / "uploads")))

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gemma3:12b")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "mxbai-embed-large:latest")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60.0"))
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.2"))

# RAG parameters (character-based, no overlap)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))

# Bytes per vector element: 4 = float32, 8 = float64. Must not change once
# vectors have been stored.
VECTOR_ELEMENT_WIDTH = int(os.getenv("VECTOR_ELEMENT_WIDTH", "8"))

# Prompting
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "en")
MAX_QUERY_LENGTH = int(os.getenv("MAX_QUERY_LENGTH", "2000"))

# Database
DB_PATH = Path(os.getenv("DB_PATH", str(DATA_DIR / "policyqa.sqlite")))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))
