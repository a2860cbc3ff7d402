"""Text rendering of the chatbot feature vote and LLM recommendations."""

from typing import Optional

from thinkedin.core.i18n_manager import I18nManager
from thinkedin.core.types import Recommendation, VoteTally
from thinkedin.presentation.thread_view import render_thought


def render_votes(tally: VoteTally, my_vote: Optional[str] = None,
                 i18n: I18nManager = None) -> str:
    i18n = i18n or I18nManager()
    lines = [
        i18n.get("votes.title"),
        i18n.get("votes.summary", want=len(tally.want), dont=len(tally.dont)),
    ]
    if my_vote is not None:
        lines.append(i18n.get("votes.yours", choice=i18n.get(f"votes.{my_vote}")))
    return "\n".join(lines)


def render_recommendation(rec: Recommendation, i18n: I18nManager = None) -> str:
    """Title, the model's answer, then each picked thought."""
    i18n = i18n or I18nManager()
    lines = [i18n.get("recommend.title", prompt=rec.prompt)]
    if rec.text:
        lines.append(rec.text)
    if not rec.posts:
        lines.append(i18n.get("recommend.none"))
    for post in rec.posts:
        lines.append("")
        lines.append(render_thought(post, i18n))
    return "\n".join(lines)
