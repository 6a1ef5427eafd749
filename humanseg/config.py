import os


class Settings:
    DETECTION_RUNTIME: str = os.environ.get("DETECTION_RUNTIME", "yolov8_seg")
    WEIGHTS_DIR: str = os.environ.get("WEIGHTS_DIR", "weights")
    DEVICE: str = os.environ.get("DEVICE", "cpu")
    BLUR_ON_STARTUP: bool = os.environ.get("BLUR_ON_STARTUP", "0").lower() in ("1", "true", "yes")
    STATS_WINDOW: int = int(os.environ.get("STATS_WINDOW", "30"))
    HOST: str = os.environ.get("HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("PORT", "8000"))
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "info")


settings = Settings()
