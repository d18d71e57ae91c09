from enum import StrEnum


class Operation(StrEnum):
    # Sent as raw callback data, no prefix
    ADD = "add"
    SUBTRACT = "subtract"

    def apply(self, first: int, second: int) -> int:
        if self is Operation.ADD:
            return first + second
        return first - second
