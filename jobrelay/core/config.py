from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Global Constants
PROMPT_MAX_LENGTH = 5000
WEBHOOK_SECRET_HEADER = "x-webhook-secret"
CALLBACK_PATH = "/jobs/webhook/callback"
MEMORY_STORE_URL = "memory://"

# Backoff for the initial storage connection
STORAGE_CONNECT_BASE_DELAY = 1.0  # seconds
