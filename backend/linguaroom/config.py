from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./linguaroom.db"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Connection pool (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Redis: room presence (who is in which room, mute state)
    # Set to empty string to disable Redis (presence queries return empty data)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PRESENCE_TTL: int = 300  # seconds; key expires if heartbeat stops
    REDIS_MAX_CONNECTIONS: int = 20

    # Used to namespace Redis keys when several deployments share a cluster.
    SERVER_DOMAIN: str = "localhost"

    # Rooms
    ROOM_DEFAULT_MAX_PARTICIPANTS: int = 10
    ROOM_MESSAGE_PAGE_LIMIT: int = 100

    # Peer signaling client (linguaroom.rtc)
    # When true the side receiving "user-joined" sends the offer; when false
    # every record is created passive and waits for an offer.
    RTC_INITIATE_ON_JOIN: bool = True
    # Wait for the microphone before announcing ourselves in the room.
    RTC_AWAIT_MEDIA: bool = True
    RTC_ICE_SERVERS: list[str] = []
    # MediaPlayer input for the microphone, e.g. "default" + "pulse" on Linux,
    # ":0" + "avfoundation" on macOS.
    RTC_MIC_DEVICE: str = "default"
    RTC_MIC_FORMAT: str = "pulse"
    RTC_HEARTBEAT_INTERVAL: float = 30.0

    model_config = {"env_file": ".env"}


settings = Settings()
