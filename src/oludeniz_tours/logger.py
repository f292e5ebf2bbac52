import logging
import os

from oludeniz_tours.config import Config

LOG_PATH_TXT = Config.LOG_FILE or os.path.join("data", "tours.log")


#-- function to initialize a logger that writes log to a file
def setup_logger(name: str, log_file: str = LOG_PATH_TXT, level=logging.INFO):
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter('%(asctime)s | %(name)s | %(levelname)s | %(message)s')
    handler = logging.FileHandler(log_file)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


_chat_logger = None


def _get_chat_logger():
    global _chat_logger
    if _chat_logger is None:
        _chat_logger = setup_logger("chat")
    return _chat_logger


def log_chat(source: str, session_id: str, user_input: str, response: str, sender: str = None):
    sender_str = f" | Sender: {sender}" if sender else ""
    message = f"{source} | {session_id} | {user_input} | {response}{sender_str}"
    _get_chat_logger().info(message)
