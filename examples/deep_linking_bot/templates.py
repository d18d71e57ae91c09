def deep_link(bot_username: str, chat_id: int) -> str:
    return f"https://t.me/{bot_username}?start={chat_id}"


class RelayTemplates:
    @staticmethod
    def start(link: str) -> str:
        return (
            "Hello! Share this link and anyone can send you an anonymous message:\n"
            f"{link}"
        )

    @staticmethod
    def send_your_message() -> str:
        return "Send your message:"

    @staticmethod
    def wrong_link() -> str:
        return "This link is invalid"

    @staticmethod
    def new_message(text: str) -> str:
        return f"You have a new message!\n\n{text}"

    @staticmethod
    def message_sent(link: str) -> str:
        return f"Message sent!\n\nYour link: {link}"

    @staticmethod
    def send_text() -> str:
        return "Please send a text message"

    @staticmethod
    def recipient_unavailable() -> str:
        return "Could not deliver the message"
