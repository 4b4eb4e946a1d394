"""Default notifier that writes to the log."""

from loguru import logger


class LoguruNotifier:
    """Notifier backed by loguru."""

    def warn(self, message: str, *, error: BaseException | None = None) -> None:
        if error is not None:
            logger.opt(exception=error).warning(message)
        else:
            logger.warning(message)

    def error(self, message: str, *, error: BaseException | None = None) -> None:
        if error is not None:
            logger.opt(exception=error).error(message)
        else:
            logger.error(message)
