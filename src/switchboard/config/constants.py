"""Default values used across the project."""

# Service identity
SERVICE_NAME = "agent-orchestration"
SERVICE_DESCRIPTION = "AI Agent Orchestration Layer for multi-brand system"

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3020

# Broker defaults
DEFAULT_REDIS_URL = "redis://localhost:6379"
DEFAULT_QUEUE_NAME = "agent-orchestration"
DEFAULT_KEY_PREFIX = "switchboard"

# Job defaults
DEFAULT_JOB_ATTEMPTS = 3
DEFAULT_BACKOFF_DELAY_MS = 1000
DEFAULT_JOB_TIMEOUT_MS = 60_000
KEEP_COMPLETED_JOBS = 100
KEEP_FAILED_JOBS = 200
DEFAULT_POLL_INTERVAL_MS = 200
DEFAULT_STALLED_GRACE_MS = 30_000
DEFAULT_STALLED_INTERVAL_MS = 30_000

# Provider defaults
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_SYSTEM_INSTRUCTIONS = "You are a helpful AI agent."
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1024
DEFAULT_CUSTOM_LATENCY_MS = 500
