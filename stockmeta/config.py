"""
Chargement et validation de la configuration de l'application.

Ce module utilise Pydantic pour lire config/config.yaml puis applique
les surcharges des variables d'environnement (fichier .env compris).
"""
import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl

# Charger le fichier .env se trouvant à la racine du projet
dotenv_path = Path(__file__).parent.parent / ".env"
if dotenv_path.exists():
    load_dotenv(dotenv_path=dotenv_path)


class AppConfig(BaseModel):
    name: str = "stockmeta"
    request_timeout: int = 120
    log_dir: Optional[Path] = None

class ApiConfig(BaseModel):
    base_url: HttpUrl = Field(default="https://generativelanguage.googleapis.com/v1beta", validate_default=True)
    model: str = "gemini-2.5-flash"
    api_key: Optional[str] = None

class GenerationConfig(BaseModel):
    temperature: float = 0.4
    top_k: int = 32
    top_p: float = 0.95
    max_output_tokens: int = 1024

class RetryConfig(BaseModel):
    max_retries: int = 5
    base_delay: float = 2.0
    max_delay: float = 60.0

class BatchingConfig(BaseModel):
    default_batch_size: int = 10
    medium_upload_mb: float = 10
    medium_batch_size: int = 8
    large_upload_mb: float = 20
    large_batch_size: int = 5
    large_file_mb: float = 2
    large_file_count: int = 5
    large_file_batch_cap: int = 3
    individual_total_mb: float = 50
    individual_file_count: int = 50
    file_delay: float = 1.0
    file_delay_step: float = 0.05
    batch_delay: float = 3.0
    batch_delay_step: float = 1.0
    fallback_delay: float = 2.0
    fallback_video_delay: float = 3.0
    preprocess_concurrency: int = 4

class DownscaleConfig(BaseModel):
    scale: float = 0.1
    max_dimension: int = 200
    min_dimension: int = 200
    quality: int = 20
    target_kb: int = 200
    second_pass_scale: float = 0.7
    second_pass_quality: int = 10

class NormalizeConfig(BaseModel):
    svg_width: int = 1200
    svg_height: int = 1200
    video_frame_time: float = 1.0
    video_decode_timeout: float = 10.0
    video_seek_timeout: float = 5.0
    video_default_width: int = 640
    video_default_height: int = 360
    eps_preview_chars: int = 1500

class RunCommandConfig(BaseModel):
    platforms: List[str] = ["AdobeStock"]
    mode: str = "metadata"
    min_title_words: int = 8
    max_title_words: int = 15
    min_keywords: int = 20
    max_keywords: int = 35
    min_description_words: int = 30
    max_description_words: int = 40
    output: Optional[Path] = None
    verbose: bool = False

class CommandsConfig(BaseModel):
    run: RunCommandConfig = RunCommandConfig()

class Settings(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    batching: BatchingConfig = Field(default_factory=BatchingConfig)
    downscale: DownscaleConfig = Field(default_factory=DownscaleConfig)
    normalize: NormalizeConfig = Field(default_factory=NormalizeConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)

    @classmethod
    def load(cls, config_file: Path = Path(__file__).parent.parent / "config" / "config.yaml") -> "Settings":
        """
        Loads configuration from config.yaml and overrides with environment variables.
        Environment variables take precedence.
        """
        config_data: Dict[str, Any] = {}
        if config_file.exists():
            with open(config_file, 'r') as f:
                config_data = yaml.safe_load(f) or {}

        # App settings
        if os.getenv("APP_NAME"):
            config_data.setdefault("app", {})["name"] = os.getenv("APP_NAME")
        if os.getenv("REQUEST_TIMEOUT"):
            config_data.setdefault("app", {})["request_timeout"] = int(os.getenv("REQUEST_TIMEOUT"))
        if os.getenv("LOG_DIR"):
            config_data.setdefault("app", {})["log_dir"] = os.getenv("LOG_DIR")

        # Model API
        if os.getenv("GEMINI_API_KEY"):
            config_data.setdefault("api", {})["api_key"] = os.getenv("GEMINI_API_KEY")
        if os.getenv("GEMINI_BASE_URL"):
            config_data.setdefault("api", {})["base_url"] = os.getenv("GEMINI_BASE_URL")
        if os.getenv("GEMINI_MODEL"):
            config_data.setdefault("api", {})["model"] = os.getenv("GEMINI_MODEL")

        # Retry
        if os.getenv("RETRY_MAX_RETRIES"):
            config_data.setdefault("retry", {})["max_retries"] = int(os.getenv("RETRY_MAX_RETRIES"))
        if os.getenv("RETRY_BASE_DELAY"):
            config_data.setdefault("retry", {})["base_delay"] = float(os.getenv("RETRY_BASE_DELAY"))
        if os.getenv("RETRY_MAX_DELAY"):
            config_data.setdefault("retry", {})["max_delay"] = float(os.getenv("RETRY_MAX_DELAY"))

        # Batching and downscaling
        if os.getenv("BATCH_DEFAULT_SIZE"):
            config_data.setdefault("batching", {})["default_batch_size"] = int(os.getenv("BATCH_DEFAULT_SIZE"))
        if os.getenv("DOWNSCALE_MAX_DIMENSION"):
            config_data.setdefault("downscale", {})["max_dimension"] = int(os.getenv("DOWNSCALE_MAX_DIMENSION"))
        if os.getenv("DOWNSCALE_QUALITY"):
            config_data.setdefault("downscale", {})["quality"] = int(os.getenv("DOWNSCALE_QUALITY"))

        return cls(**config_data)

    # Convenience accessors used throughout the codebase
    @property
    def request_timeout(self) -> int:
        return self.app.request_timeout

    @property
    def api_key(self) -> Optional[str]:
        return self.api.api_key

    @property
    def model_name(self) -> str:
        return self.api.model

    @property
    def generate_content_url(self) -> str:
        return f"{str(self.api.base_url).rstrip('/')}/models/{self.api.model}:generateContent"

    @property
    def generation_config(self) -> Dict[str, Any]:
        return {
            "temperature": self.generation.temperature,
            "topK": self.generation.top_k,
            "topP": self.generation.top_p,
            "maxOutputTokens": self.generation.max_output_tokens,
        }

# Instance globale des réglages
try:
    settings = Settings.load()
except Exception as e:
    print(f"Erreur de configuration : {e}")
    print("Veuillez vérifier votre fichier .env et config/config.yaml.")
    exit(1)
