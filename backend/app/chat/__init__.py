from app.chat.manychat import build_availability_message, build_text_message

__all__ = [
    "build_availability_message",
    "build_text_message",
]
