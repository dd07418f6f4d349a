import logging
import logging.config


def setup_from_config(app_config):
    """
    Console plus rotating file logging, as described by
    AppConfig.get_logging_config()
    """
    app_config.ensure_directories()
    logging.config.dictConfig(app_config.get_logging_config())
    return logging.getLogger()
