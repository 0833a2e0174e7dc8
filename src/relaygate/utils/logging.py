import logging

_ROOT = "relaygate"


def get_logger(name: str) -> logging.Logger:
    if name == _ROOT or name.startswith(_ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT}.{name}")
