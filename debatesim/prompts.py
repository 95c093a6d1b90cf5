"""Build provider requests for opening statements and rebuttals."""

from collections.abc import Sequence

from config.config_loader import PromptsConfig
from debatesim.models import HistoryEntry, Message, ProviderRequest, Role, Sender, Side
from debatesim.word_counter import DEFAULT_WORD_LIMIT

_SENDER_ROLES = {Sender.AI: Role.ASSISTANT, Sender.HUMAN: Role.USER}


def to_history_entry(item: Message | HistoryEntry) -> HistoryEntry:
    if isinstance(item, HistoryEntry):
        return item
    return HistoryEntry(role=_SENDER_ROLES[item.sender], content=item.content)


class PromptBuilder:
    """Renders the configured prompt templates.

    The word limit is only stated in the prompt text. Replies are not
    truncated; callers track their real length with the word counter.
    """

    def __init__(self, prompts: PromptsConfig, word_limit: int = DEFAULT_WORD_LIMIT) -> None:
        self._prompts = prompts
        self.word_limit = word_limit

    def _system_prompt(self, template: str, topic: str, ai_side: Side) -> str:
        return template.format(topic=topic, side=Side(ai_side).value, limit=self.word_limit).strip()

    def build_opening_request(self, topic: str, ai_side: Side) -> ProviderRequest:
        return ProviderRequest(
            system_prompt=self._system_prompt(self._prompts.opening, topic, ai_side),
            history=(HistoryEntry(role=Role.USER, content=self._prompts.opening_seed),),
        )

    def build_rebuttal_request(
        self,
        topic: str,
        ai_side: Side,
        prior_messages: Sequence[Message | HistoryEntry],
        latest_human_text: str,
    ) -> ProviderRequest:
        """Chronological history, then the latest human text as the newest user entry."""
        history = tuple(to_history_entry(m) for m in prior_messages)
        history += (HistoryEntry(role=Role.USER, content=latest_human_text),)
        return ProviderRequest(
            system_prompt=self._system_prompt(self._prompts.rebuttal, topic, ai_side),
            history=history,
        )

    def fallback_opening(self, topic: str, ai_side: Side) -> str:
        return self._prompts.fallback_opening.format(topic=topic, side=Side(ai_side).value)

    def fallback_rebuttal(self, topic: str, ai_side: Side) -> str:
        return self._prompts.fallback_rebuttal.format(topic=topic, side=Side(ai_side).value)
