"""The fixed, ordered catalog of evaluation prompts."""

from __future__ import annotations

from collections.abc import Sequence

DEFAULT_PROMPTS: tuple[str, ...] = (
    # Specific font/foundry name
    "fonts from helvetica",
    "Show me all fonts from Colophon Foundry",
    # Known references and similar fonts
    "What are some free alternatives to Proxima Nova?",
    "Show me fonts that feel like Gotham but are not as wide",
    # Font characteristics / style
    "Show me a heavy, condensed display font",
    "Recommend an organic, rounded sans-serif",
    # Use case / task based
    "What are good fonts for typesetting a print-on-demand novel?",
    "Suggest fonts for the user interface of a mobile banking app",
    "I need a font for the packaging of a craft beer brand",
    "What are the best fonts for a professional resume?",
    "Show me fonts suitable for a museum wall text",
    "Find a font for wayfinding signage in a large hospital",
    "I'm looking for a font for a children's picture book",
    "What fonts work well for a podcast cover art?",
    "Suggest a typeface for the credits sequence of a documentary film",
    "I need a font for the body copy of a long-form academic paper",
    # Mood / brand personality
    "Find fonts that feel trustworthy and institutional for a bank's website",
    "I need a font that looks luxurious and premium for a fashion brand",
    "Show me fonts that feel friendly and approachable for a healthcare provider",
    "Suggest a font with a playful and bubbly personality for a kids' toy brand",
    "I'm looking for a font that is bold and action-oriented for a fitness app",
    "Find fonts that feel earthy and organic for a sustainability-focused company",
    "Show me fonts that are experimental and edgy for a disruptive tech startup",
    "I need a font that feels neutral and understated for a wellness app",
    "Suggest a typeface that feels rebellious and rule-breaking",
    "Find fonts with a hand-crafted touch for an artisanal goods shop",
)


class PromptCatalog:
    """Ordered prompt list; prompt text is the key, position is display only."""

    def __init__(self, prompts: Sequence[str] | None = None) -> None:
        self._prompts = tuple(prompts) if prompts is not None else DEFAULT_PROMPTS

    def __len__(self) -> int:
        return len(self._prompts)

    def __iter__(self):
        return iter(self._prompts)

    def __contains__(self, prompt: object) -> bool:
        return prompt in self._prompts

    def prompt_id(self, prompt: str) -> int | None:
        """Return the 1-based position of a prompt, or None if it is not listed."""
        try:
            return self._prompts.index(prompt) + 1
        except ValueError:
            return None

    def get(self, prompt_id: int) -> str:
        """Look up a prompt by its 1-based position."""
        if not 1 <= prompt_id <= len(self._prompts):
            msg = f"Prompt id {prompt_id} out of range 1..{len(self._prompts)}"
            raise IndexError(msg)
        return self._prompts[prompt_id - 1]
