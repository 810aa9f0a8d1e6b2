import os
from dotenv import load_dotenv

load_dotenv()

GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./datasets.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Column-name similarity above which the fallback detector links two columns
SIMILARITY_THRESHOLD = float(os.getenv("SIMILARITY_THRESHOLD", "0.7"))

# Rows sampled per column when deciding numeric vs categorical
CLASSIFIER_SAMPLE_SIZE = int(os.getenv("CLASSIFIER_SAMPLE_SIZE", "100"))
CLASSIFIER_FAST_SAMPLE_SIZE = int(os.getenv("CLASSIFIER_FAST_SAMPLE_SIZE", "10"))

SCATTER_MAX_POINTS = int(os.getenv("SCATTER_MAX_POINTS", "200"))
BIN_COUNT = int(os.getenv("BIN_COUNT", "20"))
LEADERBOARD_SIZE = int(os.getenv("LEADERBOARD_SIZE", "10"))

OVERLAP_MIN_CONFIDENCE = float(os.getenv("OVERLAP_MIN_CONFIDENCE", "0.5"))
RELATIONSHIP_MAX_TOKENS = int(os.getenv("RELATIONSHIP_MAX_TOKENS", "400"))

SHARE_BASE_URL = os.getenv("SHARE_BASE_URL", "http://127.0.0.1:8000")
