# backend/chatwidget/config.py
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./chatwidget.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [o for o in os.getenv("CORS_ORIGINS", "").split(",") if o]
CHAT_INACTIVE_DAYS = int(os.getenv("CHAT_INACTIVE_DAYS", "3"))

TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
OPERATOR_CHAT_IDS = [int(i) for i in os.getenv("OPERATOR_CHAT_IDS", "").split(",") if i.strip()]
DASHBOARD_URL = os.getenv("DASHBOARD_URL", "http://localhost:8000")

GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
GROQ_API_URL = os.getenv("GROQ_API_URL", "https://api.groq.com/openai/v1/chat/completions")

RESEND_API_KEY = os.getenv("RESEND_API_KEY")
SUMMARY_FROM_ADDRESS = os.getenv("SUMMARY_FROM_ADDRESS", "hello@example.com")

# Widget engine timings
WIDGET_INACTIVITY_MINUTES = int(os.getenv("WIDGET_INACTIVITY_MINUTES", "60"))
WIDGET_AWAY_MINUTES = int(os.getenv("WIDGET_AWAY_MINUTES", "15"))
WIDGET_HISTORY_POLL_SECONDS = float(os.getenv("WIDGET_HISTORY_POLL_SECONDS", "3"))
WIDGET_CONFIG_POLL_SECONDS = float(os.getenv("WIDGET_CONFIG_POLL_SECONDS", "30"))
WIDGET_SWEEP_SECONDS = float(os.getenv("WIDGET_SWEEP_SECONDS", "60"))
