from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".clinrecall" / "data"
    sqlite_filename: str = "clinrecall.db"
    log_level: str = "warning"

    # LLM: Ollama first, GGUF fallback (runtime overrides live in the settings table)
    ollama_url: str = "http://localhost:11434"
    llm_model_id: str = ""
    llm_model_path: str = ""
    llm_timeout_seconds: float = 120.0

    # ElevenLabs speech relays
    elevenlabs_api_key: str = ""
    elevenlabs_base_url: str = "https://api.elevenlabs.io"
    elevenlabs_stt_url: str = "https://api.elevenlabs.io/v1/speech-to-text"
    elevenlabs_stt_model_id: str = "scribe_v1"
    elevenlabs_voice_id: str = "pNInz6obpgDQGcFmaJgB"
    elevenlabs_tts_model_id: str = "eleven_turbo_v2_5"
    use_mock_stt: bool = False
    stt_max_upload_bytes: int = 50 * 1024 * 1024
    stt_rate_limit_max: int = 200
    stt_rate_limit_window_seconds: int = 3600

    study_session_limit: int = 100

    model_config = {"env_prefix": "CLINRECALL_"}


settings = Settings()
