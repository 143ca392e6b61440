"""
Email rendering for Idea Generator.

Renders the idea digest and the subscription confirmation as small,
self-contained HTML documents. Every user-supplied or LLM-supplied string is
escaped. Templates are swappable: the notifier only depends on the
DigestTemplate interface.
"""

from html import escape
from typing import List, Optional

from ideagen.models import ALL_TOPICS, Concept


def digest_subject(count: int) -> str:
    return f"Your Daily Idea Digest - {count} New Ideas"


def confirmation_subject(subscribed: bool) -> str:
    if subscribed:
        return "You're subscribed to idea updates!"
    return "You've unsubscribed from idea updates"


class DigestTemplate:
    """
    Default HTML templates.

    Subclass and override `render_digest` / `render_confirmation` to change
    the markup; the notifier calls nothing else.
    """

    def _page(self, title: str, body: List[str]) -> str:
        lines = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '  <meta charset="UTF-8">',
            f"  <title>{escape(title)}</title>",
            "</head>",
            '<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #171717;">',
            '  <div style="max-width: 600px; margin: 0 auto; padding: 40px 24px;">',
            f"    <h1>{escape(title)}</h1>",
        ]
        lines.extend(f"    {line}" for line in body)
        lines.extend([
            "  </div>",
            "</body>",
            "</html>",
        ])
        return "\n".join(lines)

    def render_digest(self, concepts: List[Concept], topic: Optional[str] = None) -> str:
        """
        Render the idea digest.

        Args:
            concepts: Concepts to include, already ordered.
            topic: Topic the digest is about; None or "all" means every topic.
        """
        if topic and topic != ALL_TOPICS:
            title = f'Ideas for "{topic}"'
        else:
            title = "Latest Ideas"

        body = ['<p style="color: #737373;">Here are the latest validated SaaS ideas from Reddit discussions.</p>']

        if not concepts:
            body.append("<p>No new ideas this time.</p>")

        for concept in concepts:
            body.extend([
                '<div style="margin-bottom: 24px; padding: 24px; border-left: 4px solid #171717;">',
                f"  <h2>{escape(concept.title)} <span>{concept.score}/100</span></h2>",
                f"  <p>{escape(concept.pitch)}</p>",
            ])
            if concept.target_audience:
                body.append(f"  <p><strong>For:</strong> {escape(concept.target_audience)}</p>")
            body.extend([
                f'  <p style="color: #737373;"><strong>Pain Point:</strong> {escape(concept.pain_point)}</p>',
                "</div>",
            ])

        body.append('<p style="color: #737373;">You\'re receiving this because you subscribed to idea updates.</p>')
        return self._page(title, body)

    def render_confirmation(self, subscribed: bool, topic: str) -> str:
        """Render the subscribe/unsubscribe confirmation."""
        if subscribed:
            intro = (
                "You've successfully subscribed to receive idea digests. We'll send you "
                "the latest validated SaaS ideas from Reddit discussions."
            )
        else:
            intro = (
                "You've successfully unsubscribed from idea updates. "
                "You won't receive any more digest emails for this topic."
            )

        body = [
            f"<p>{intro}</p>",
            f"<p>Status: <strong>{'Subscribed' if subscribed else 'Unsubscribed'}</strong></p>",
            f"<p>Topic: <strong>{escape(topic)}</strong></p>",
            f"<p style=\"color: #737373;\">If you didn't {'subscribe' if subscribed else 'unsubscribe'}, please contact support.</p>",
        ]
        return self._page(confirmation_subject(subscribed), body)
