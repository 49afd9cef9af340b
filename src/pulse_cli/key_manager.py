from typing import Callable, List

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.lexers import PygmentsLexer
from pygments.lexers.markup import MarkdownLexer


# ========== Key bindings ==========
class KeyBindingManager:
    """Enter inserts a newline; Ctrl+J or Esc+Enter submits; Ctrl+C clears."""

    SUBMIT_KEYS = (("c-j",), ("escape", "enter"))
    SUBMIT_LABELS = ("Ctrl+J", "Esc+Enter")

    def __init__(self, accept_callback: Callable[[], None], clear_callback: Callable[[], None]):
        self._accept = accept_callback
        self._clear = clear_callback
        self.bindings = KeyBindings()
        self.submit_labels: List[str] = []
        self._register()

    def _register(self):
        for keys, label in zip(self.SUBMIT_KEYS, self.SUBMIT_LABELS):
            self.bindings.add(*keys)(lambda event: self._accept())
            self.submit_labels.append(label)

        @self.bindings.add("c-c")
        def _(event):
            self._clear()


class SessionFactory:
    @staticmethod
    def build_session(bindings: KeyBindings) -> PromptSession:
        return PromptSession(
            multiline=True,
            key_bindings=bindings,
            lexer=PygmentsLexer(MarkdownLexer),
            history=InMemoryHistory(),
        )

    @staticmethod
    def make_prompt_fragments(counter: int) -> FormattedText:
        return FormattedText([
            ("class:prompt.counter", f"[{counter}] "),
            ("bold", "task> "),
        ])
