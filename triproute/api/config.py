# triproute/api/config.py
"""Configuration management for the trip planner API."""
import os
from dotenv import load_dotenv

load_dotenv()


def get_ai_api_key():
    """Get the AI completion API key from environment."""
    api_key = os.getenv("GROQ_API_KEY") or os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("GROQ_API_KEY not set")
    return api_key


def get_ai_config():
    """Get AI seed service configuration."""
    return {
        # Any OpenAI-compatible chat completions endpoint works here
        "base_url": os.getenv("AI_BASE_URL", "https://api.groq.com/openai/v1"),
        "model": os.getenv("AI_MODEL", "llama-3.1-8b-instant"),
        "temperature": float(os.getenv("AI_TEMPERATURE", "0.25")),
        "timeout": float(os.getenv("AI_TIMEOUT_SECONDS", "30")),
    }


def get_routing_config():
    """Get routing service configuration."""
    return {
        "base_url": os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org").rstrip("/"),
        "profile_walk": os.getenv("ROUTING_PROFILE_WALK", "foot"),
        "profile_bike": os.getenv("ROUTING_PROFILE_BIKE", "bike"),
        "nearest_timeout": float(os.getenv("ROUTING_NEAREST_TIMEOUT", "15")),
        "route_timeout": float(os.getenv("ROUTING_ROUTE_TIMEOUT", "30")),
    }


def get_profile_chains():
    """Walking and biking fallback chains: preferred profile, then synonyms."""
    cfg = get_routing_config()
    return {
        "walk": (cfg["profile_walk"], "walking", "foot"),
        "bike": (cfg["profile_bike"], "cycling", "bike"),
    }


def get_planner_config():
    """Get planner retry budgets and timing."""
    return {
        "max_loop_tries": int(os.getenv("PLANNER_MAX_LOOP_TRIES", "10")),
        "max_replans": int(os.getenv("PLANNER_MAX_REPLANS", "4")),
        "day_workers": int(os.getenv("PLANNER_DAY_WORKERS", "1")),
        "deadline_seconds": float(os.getenv("PLANNER_DEADLINE_SECONDS", "120")),
    }


def get_google_maps_api_key():
    return os.getenv("GOOGLE_MAPS_API_KEY", "")


def get_port():
    """Get port configuration."""
    return int(os.getenv("PORT", 5000))
