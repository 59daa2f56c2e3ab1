# harness/lib/state.py
# State holders (no Core dependency).
# Both are plain sinks: whatever is written is what is read back.


class InputState:
    def __init__(self, text: str = ""):
        self._text = text

    def set_input(self, text: str) -> None:
        self._text = text

    def get_input(self) -> str:
        return self._text


class ResultRenderer:
    def __init__(self, text: str = ""):
        self._text = text

    def set_output(self, text: str) -> None:
        self._text = text

    def get_output(self) -> str:
        return self._text
