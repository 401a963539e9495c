from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # URL подключения к БД
    DATABASE_URL: str

    # Список доменов, которым разрешён доступ (через CORS)
    # Можно оставить пустым — тогда в main.py будет * (всё разрешено)
    CORS_ORIGINS: str = ""

    # Сериализация бронирований по ключу (coverage_id, travel_date).
    # false → старое поведение check-then-act, возможен овербукинг
    SERIALIZE_RESERVATIONS: bool = True

    LOG_LEVEL: str = "INFO"


# Экземпляр настроек (автоматически подтянет переменные из env)
settings = Settings()
