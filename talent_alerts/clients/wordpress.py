"""WordPress (content platform) client with article shape normalization."""

import logging
from typing import Any

import requests
from pydantic import ValidationError

from talent_alerts.clients.base import HttpClient
from talent_alerts.core.config import WordpressConfig
from talent_alerts.core.errors import UpstreamError
from talent_alerts.core.schemas import Article, ArticleSummary
from talent_alerts.formatting.text import strip_tags

logger = logging.getLogger(__name__)


class WordpressClient(HttpClient):
    """Category-filtered article listing and single-article lookup."""

    def __init__(self, config: WordpressConfig, *, session: requests.Session | None = None) -> None:
        super().__init__(config.api_url, timeout_s=config.timeout_s, session=session)
        self._config = config

    async def get_latest_articles(self, count: int | None = None) -> list[Article]:
        """Newest articles first, with featured media embedded."""
        body = await self._request(
            "GET",
            "/posts",
            params={
                "categories": self._config.category_id,
                "per_page": count or self._config.latest_count,
                "_embed": "true",
            },
        )
        posts = body if isinstance(body, list) else []
        articles: list[Article] = []
        for post in posts:
            if not isinstance(post, dict):
                continue
            try:
                articles.append(normalize_article(post))
            except (KeyError, ValidationError) as e:
                logger.warning("Skipping malformed post %s: %s", post.get("id"), e)
        logger.info("Retrieved %d articles from WordPress", len(articles))
        return articles

    async def get_all_articles(self) -> list[ArticleSummary]:
        body = await self._request(
            "GET", "/posts", params={"categories": self._config.category_id, "per_page": 100},
        )
        posts = body if isinstance(body, list) else []
        summaries: list[ArticleSummary] = []
        for post in posts:
            if not isinstance(post, dict) or "id" not in post:
                continue
            try:
                summaries.append(ArticleSummary(id=post["id"], title=_rendered(post.get("title"))))
            except ValidationError as e:
                logger.warning("Skipping malformed post %s: %s", post.get("id"), e)
        return summaries

    async def get_article(self, article_id: int) -> Article | None:
        """Return one article, or None when WordPress answers 404."""
        try:
            body = await self._request("GET", f"/posts/{article_id}", params={"_embed": "true"})
        except UpstreamError as e:
            if e.status == 404:
                return None
            raise
        if not isinstance(body, dict):
            return None
        try:
            return normalize_article(body)
        except (KeyError, ValidationError) as e:
            msg = f"Article {article_id} has an unexpected shape: {e}"
            raise UpstreamError(msg, body=body) from e


def normalize_article(post: dict[str, Any]) -> Article:
    """Flatten a raw WordPress post into an Article."""
    media = (post.get("_embedded") or {}).get("wp:featuredmedia") or []
    featured = media[0].get("source_url") if media and isinstance(media[0], dict) else None
    return Article(
        id=post["id"],
        title=_rendered(post.get("title")),
        excerpt=strip_tags(_rendered(post.get("excerpt"))).strip(),
        link=post.get("link") or "",
        date=post.get("date"),
        featuredImage=featured,
    )


def _rendered(field: Any) -> str:
    if isinstance(field, dict):
        return field.get("rendered") or ""
    return field or ""
