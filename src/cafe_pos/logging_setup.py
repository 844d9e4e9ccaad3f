import logging

from cafe_pos.config import settings


def setup_logging(level: str | None = None) -> None:
    """
    Настраивает корневой логгер: уровень из настроек и вывод в консоль.
    Повторный вызов заменяет обработчики, а не дублирует их.
    """
    root_logger = logging.getLogger()

    level_name = (level or settings.LOG_LEVEL).upper()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
    root_logger.addHandler(console_handler)

    # SQL пишет сам SQLAlchemy, если включен SQL_ECHO
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.SQL_ECHO else logging.WARNING
    )
