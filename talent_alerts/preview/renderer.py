"""Browser previews of the campaign emails.

The mail platform renders the real emails server-side; previews fill local
copies of the same templates with the stored campaign payload. The template
syntax is a small subset of the platform's:

  {{ scope.field }}                      value lookup by dotted path
  {% for x in scope.list %}...{% endfor %}  repeat per item, with loop.index

Missing values render as an empty string, or as the placeholder image for
image fields. Leftover block tags are dropped. Rendering never raises on
missing data.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from talent_alerts.campaigns.candidate_digest import CandidateDigestCampaign
from talent_alerts.campaigns.newsletter import NewsletterCampaign
from talent_alerts.clients.jobadder import JobAdderClient
from talent_alerts.clients.wordpress import WordpressClient
from talent_alerts.core.config import PreviewConfig
from talent_alerts.core.errors import NoMaterialError
from talent_alerts.formatting.jobs import format_job

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

_TOKEN_RE = re.compile(
    r"\{%\s*for\s+(?P<var>\w+)\s+in\s+(?P<list>[\w.]+)\s*%\}(?P<body>.*?)\{%\s*endfor\s*%\}"
    r"|\{\{\s*(?P<path>[\w.]+)\s*\}\}"
    r"|\{%.*?%\}",
    re.DOTALL,
)
_IMAGE_FIELD_RE = re.compile(r"(image|avatar|photo)", re.IGNORECASE)

DEFAULT_PLACEHOLDER_IMAGE = "https://via.placeholder.com/650x300"


def lookup(data: Any, path: str) -> Any:
    """Resolve a dotted path through nested dicts; None when anything is missing."""
    current = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def render(template: str, data: dict[str, Any], *, placeholder_image_url: str = DEFAULT_PLACEHOLDER_IMAGE) -> str:
    """Fill ``template`` from ``data``. Pure string transform.

    One left-to-right pass: inserted values are never scanned for tags.
    """

    def expand_loop(match: re.Match[str]) -> str:
        var, path, body = match.group("var"), match.group("list"), match.group("body")
        items = lookup(data, path)
        if not isinstance(items, list):
            return ""
        parts = []
        for index, item in enumerate(items):
            scope = {
                **data,
                var: item,
                "loop": {"index": index + 1, "first": index == 0, "last": index == len(items) - 1},
            }
            parts.append(render(body, scope, placeholder_image_url=placeholder_image_url))
        return "".join(parts)

    def substitute(match: re.Match[str]) -> str:
        path = match.group("path")
        value = lookup(data, path)
        if value is None or value == "":
            return placeholder_image_url if _IMAGE_FIELD_RE.search(path.rsplit(".", 1)[-1]) else ""
        return str(value)

    def replace(match: re.Match[str]) -> str:
        if match.group("var") is not None:
            return expand_loop(match)
        if match.group("path") is not None:
            return substitute(match)
        return ""

    return _TOKEN_RE.sub(replace, template)


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    path = TEMPLATES_DIR / f"{name}.html"
    if not path.exists():
        msg = f"Template not found: {path}"
        raise FileNotFoundError(msg)
    return path.read_text(encoding="utf-8")


class PreviewService:
    """Renders each campaign's template with a preview contact."""

    def __init__(
        self,
        digest: CandidateDigestCampaign,
        newsletter: NewsletterCampaign,
        content: WordpressClient,
        ats: JobAdderClient,
        *,
        config: PreviewConfig,
        apply_url_template: str,
    ) -> None:
        self._digest = digest
        self._newsletter = newsletter
        self._content = content
        self._ats = ats
        self._config = config
        self._apply_url_template = apply_url_template

    def _render(self, template_name: str, params: dict[str, Any]) -> str:
        data = {
            "contact": {
                "FIRSTNAME": "Preview",
                "LASTNAME": "User",
                "EMAIL": self._config.contact_email,
            },
            "params": params,
        }
        return render(
            load_template(template_name), data,
            placeholder_image_url=self._config.placeholder_image_url,
        )

    def candidate_digest(self) -> str:
        state = self._digest.get_state()
        candidates = state.payload.get("candidates")
        if not candidates:
            msg = "No candidate digest generated. Please generate first."
            raise NoMaterialError(msg)
        return self._render("candidate_digest", {"candidates": candidates})

    def newsletter(self) -> str:
        state = self._newsletter.get_state()
        if not state.payload.get("featuredArticle"):
            msg = "No newsletter data available. Please generate first."
            raise NoMaterialError(msg)
        return self._render("newsletter", dict(state.payload))

    async def article(self, article_id: int) -> str:
        article = await self._content.get_article(article_id)
        if article is None:
            msg = f"Article {article_id} not found"
            raise NoMaterialError(msg)
        return self._render("single_article", {"article": article.model_dump(by_alias=True)})

    async def job(self, job_id: int) -> str:
        job = await self._ats.get_job(job_id)
        formatted = format_job(job, apply_url_template=self._apply_url_template)
        logger.debug("Rendering job preview for %s", job_id)
        return self._render("job_alert", formatted.model_dump())
