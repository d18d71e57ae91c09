class CalculatorTemplates:
    @staticmethod
    def what_do_you_want() -> str:
        return "What would you like to do?"

    @staticmethod
    def enter_first_number() -> str:
        return "Enter the first number"

    @staticmethod
    def enter_second_number() -> str:
        return "Enter the second number"

    @staticmethod
    def result(value: int) -> str:
        return f"Result: {value}"

    @staticmethod
    def not_a_number() -> str:
        return "Please enter a number"

    @staticmethod
    def send_text() -> str:
        return "Please send a text message"
