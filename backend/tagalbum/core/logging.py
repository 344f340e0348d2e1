import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # SQL 语句由 SQL_ECHO 控制，这里不重复输出
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
