"""
Email verification link resolution.

The developer email-log viewer lists every outgoing message as an anchor
whose href names the rendered message file. The file name contains the
recipient address, but the encoding of that address is inconsistent
(``@`` may appear raw, as ``%40`` or as ``%2540``), so matching is done
against several decoded forms of the href and several encoded forms of
the fragment.

Resolution is split into stages so each can fail with its own error:

1. ``find_candidate_link``: pick the message anchor in the inbox listing.
2. ``follow_link``: open it, in a new tab or in place.
3. ``resolve_second_stage_link``: pick the action link in the message.
4. ``resolve_navigation_target``: click it and find the page that shows
   the result.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Union
from urllib.parse import quote, unquote

from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import TimeoutSettings
from .exceptions import (
    LinkNotFoundError,
    NavigationTimeoutError,
    VerificationLinkNotFoundError,
)
from .race import race

logger = logging.getLogger(__name__)

LISTING_SELECTOR = "div#developerStatus"
VIEW_PATH = "/development/view-email"
VERIFICATION_KEYWORDS = ("verify", "confirm", "validation", "activate")

_SCRAPE_ANCHORS = """
els => els.map(el => ({
    href: el.getAttribute('href') || '',
    text: (el.innerText || el.textContent || '').trim(),
}))
"""

UrlPattern = Union[str, Pattern[str]]


def css_string(value: str) -> str:
    """Escape ``value`` for a double-quoted CSS attribute selector."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


@dataclass(frozen=True)
class CandidateLink:
    """An anchor scraped from a page, identified by its DOM position."""

    index: int
    href: str
    text: str = ""

    @property
    def decoded_forms(self) -> tuple[str, ...]:
        return decoded_forms(self.href)


def email_fragment(address: str) -> str:
    """Return the local part of an email address."""
    return address.split("@", 1)[0]


def decoded_forms(value: str) -> tuple[str, ...]:
    """
    Return ``value`` as-is, percent-decoded once and decoded twice.

    ``unquote`` is used rather than ``unquote_plus`` so a literal ``+`` in
    a sub-addressed email survives decoding. Duplicates are dropped.
    """
    once = unquote(value)
    twice = unquote(once)
    return tuple(dict.fromkeys((value, once, twice)))


def fragment_variants(fragment: str) -> tuple[str, ...]:
    """Return the fragment and the encodings it may take inside an href."""
    variants = (
        fragment,
        quote(fragment, safe=""),
        fragment.replace("@", "%40"),
        fragment.replace("@", "%2540"),
        fragment.replace("+", "%2B"),
        fragment.replace(".", "%2E"),
        fragment.replace("+", "%2B").replace(".", "%2E"),
    )
    return tuple(dict.fromkeys(variants))


def _contains_fragment(value: str, fragment: str, variants: Sequence[str]) -> bool:
    if any(fragment in form for form in decoded_forms(value)):
        return True
    return any(variant in value for variant in variants)


def link_matches_fragment(href: str, text: str, fragment: str) -> bool:
    """
    Check whether an anchor refers to ``fragment``.

    The fragment is looked up in every decoded form of the href, and every
    encoded variant of the fragment is looked up in the raw href. The
    visible text is checked the same way.
    """
    variants = fragment_variants(fragment)
    return _contains_fragment(href, fragment, variants) or _contains_fragment(
        text, fragment, variants
    )


def first_matching_candidate(
    candidates: Sequence[CandidateLink], fragment: str
) -> Optional[CandidateLink]:
    """Return the first candidate in document order that matches ``fragment``."""
    for candidate in candidates:
        if link_matches_fragment(candidate.href, candidate.text, fragment):
            return candidate
    return None


def _normalize_text(text: str) -> str:
    return " ".join(text.split()).casefold()


def rank_verification_links(
    anchors: Sequence[CandidateLink],
    cta_text: Optional[str] = None,
    path_markers: Sequence[str] = (),
    keywords: Sequence[str] = VERIFICATION_KEYWORDS,
) -> Optional[tuple[int, CandidateLink]]:
    """
    Pick the action link of a message body.

    Tiers, most specific first:

    1. visible text equals ``cta_text`` and href contains a path marker;
    2. visible text equals ``cta_text``;
    3. href contains a path marker;
    4. href contains one of ``keywords`` (case-insensitive).

    Text comparison ignores case and collapses whitespace. The first
    non-empty tier wins and the first anchor within it is returned.

    Returns:
        ``(tier, anchor)`` or None when every tier is empty.
    """
    wanted = _normalize_text(cta_text) if cta_text else None

    def text_matches(anchor: CandidateLink) -> bool:
        return wanted is not None and _normalize_text(anchor.text) == wanted

    def href_has_marker(anchor: CandidateLink) -> bool:
        return any(marker in anchor.href for marker in path_markers)

    def href_has_keyword(anchor: CandidateLink) -> bool:
        href = anchor.href.lower()
        return any(keyword.lower() in href for keyword in keywords)

    tiers = (
        lambda a: text_matches(a) and href_has_marker(a),
        text_matches,
        href_has_marker,
        href_has_keyword,
    )
    for tier, predicate in enumerate(tiers, start=1):
        for anchor in anchors:
            if predicate(anchor):
                return tier, anchor
    return None


async def scrape_anchors(anchors: Locator) -> list[CandidateLink]:
    """Read href and visible text of every anchor matched by ``anchors``."""
    rows = await anchors.evaluate_all(_SCRAPE_ANCHORS)
    return [
        CandidateLink(index=i, href=row["href"], text=row["text"])
        for i, row in enumerate(rows)
    ]


class EmailLinkResolver:
    """
    Finds and follows verification links through the email-log viewer.

    The inbox page is borrowed from the caller and never closed, so one
    resolver can serve several lookups in the same scenario.
    """

    def __init__(
        self,
        inbox_page: Page,
        settings: Optional[TimeoutSettings] = None,
        listing_selector: str = LISTING_SELECTOR,
        view_path: str = VIEW_PATH,
    ):
        self.inbox_page = inbox_page
        self.timeouts = settings or TimeoutSettings()
        self.listing_selector = listing_selector
        self.view_path = view_path

    def candidate_links(self, marker: str) -> Locator:
        """Inbox anchors pointing at a message whose file name has ``marker``."""
        return self.inbox_page.locator(
            f'{self.listing_selector} '
            f'a[href*="{css_string(self.view_path)}"][href*="{css_string(marker)}"]'
        )

    async def _wait_for_stable_count(self, anchors: Locator) -> int:
        # The listing is rendered by script; wait until two reads agree
        count = await anchors.count()
        waited = 0
        while waited < self.timeouts.listing:
            await self.inbox_page.wait_for_timeout(self.timeouts.poll_interval)
            waited += self.timeouts.poll_interval
            latest = await anchors.count()
            if latest == count:
                break
            count = latest
        return count

    async def find_candidate_link(self, marker: str, fragment: str) -> Locator:
        """
        Locate the inbox anchor for the message addressed by ``fragment``.

        Args:
            marker: Substring of the message file name, e.g. the template
                name ``-validate-your-email``.
            fragment: Substring identifying the recipient, typically the
                email address or its local part.

        Returns:
            Locator of the first matching anchor in document order.

        Raises:
            LinkNotFoundError: If no anchor appears within the listing
                timeout, or none of them matches ``fragment``.
        """
        if not fragment:
            raise ValueError("fragment must not be empty")

        anchors = self.candidate_links(marker)
        logger.info("Inbox scan: marker=%r fragment=%r", marker, fragment)
        try:
            await anchors.first.wait_for(state="visible", timeout=self.timeouts.listing)
        except PlaywrightTimeoutError:
            raise LinkNotFoundError(
                marker, fragment, 0, {"timeout_ms": self.timeouts.listing}
            ) from None

        await self._wait_for_stable_count(anchors)
        candidates = await scrape_anchors(anchors)
        match = first_matching_candidate(candidates, fragment)
        if match is None:
            raise LinkNotFoundError(
                marker,
                fragment,
                len(candidates),
                {"hrefs": [c.href for c in candidates[:10]]},
            )

        logger.info(
            "Inbox scan: picked link %d of %d: %s",
            match.index + 1,
            len(candidates),
            match.href,
        )
        return anchors.nth(match.index)

    async def follow_link(self, link: Locator) -> Page:
        """
        Open an inbox link and return the page showing the message.

        The new-page listener is attached before the click. When no page
        opens, the link is assumed to have navigated the inbox page itself.
        """
        await link.wait_for(state="visible", timeout=self.timeouts.link)
        context = self.inbox_page.context
        try:
            async with context.expect_page(timeout=self.timeouts.new_page) as page_info:
                await link.click()
            message_page = await page_info.value
        except PlaywrightTimeoutError:
            logger.info("Message opened in the inbox tab")
            await self.inbox_page.wait_for_load_state("domcontentloaded")
            return self.inbox_page

        await message_page.wait_for_load_state("domcontentloaded")
        logger.info("Message opened in a new tab: %s", message_page.url)
        return message_page

    async def resolve_second_stage_link(
        self,
        message_page: Page,
        cta_text: Optional[str] = None,
        path_markers: Sequence[str] = (),
    ) -> Locator:
        """
        Find the action link inside a message.

        See ``rank_verification_links`` for the tier cascade.

        Raises:
            VerificationLinkNotFoundError: If every tier is empty.
        """
        links = message_page.locator("body a[href]")
        try:
            await links.first.wait_for(state="attached", timeout=self.timeouts.link)
        except PlaywrightTimeoutError:
            raise VerificationLinkNotFoundError(
                cta_text, path_markers, 0, {"url": message_page.url}
            ) from None

        anchors = await scrape_anchors(links)
        ranked = rank_verification_links(anchors, cta_text, path_markers)
        if ranked is None:
            raise VerificationLinkNotFoundError(
                cta_text,
                path_markers,
                len(anchors),
                {"url": message_page.url},
            )

        tier, anchor = ranked
        logger.info(
            "Message-link scan: tier %d matched %s (%r)", tier, anchor.href, anchor.text
        )
        return links.nth(anchor.index)

    async def _close_message_page(self, message_page: Page) -> None:
        if message_page is not self.inbox_page:
            await message_page.close()

    def _close_late_page(self, task: asyncio.Future) -> None:
        if task.cancelled() or task.exception() is not None:
            return
        late: Page = task.result()
        logger.info("Closing page opened after the navigation race: %s", late.url)
        asyncio.ensure_future(late.close())

    async def resolve_navigation_target(
        self,
        message_page: Page,
        link: Locator,
        target_url_pattern: UrlPattern,
        root_page: Optional[Page] = None,
        timeout: Optional[float] = None,
        strict: bool = False,
    ) -> Page:
        """
        Click ``link`` and return the page that shows the result.

        Possible outcomes are raced: a new page in the context, the message
        page reaching ``target_url_pattern``, and optionally ``root_page``
        reaching it. Pages made redundant by the outcome are closed. When
        nothing fires in time the message page is returned as is, and a
        page the click opens during the following fallback window is
        closed as well.

        Raises:
            NavigationTimeoutError: If ``strict`` is set and nothing fires.
        """
        timeout = timeout or self.timeouts.navigation
        context = message_page.context
        await link.wait_for(state="visible", timeout=self.timeouts.link)

        # Listens past the race deadline so a late tab can still be closed
        new_page = asyncio.ensure_future(
            context.wait_for_event("page", timeout=timeout + self.timeouts.fallback)
        )
        branches = {
            "new_page": new_page,
            "message_page": message_page.wait_for_url(
                target_url_pattern, timeout=timeout
            ),
        }
        if root_page is not None and root_page is not message_page:
            branches["root_page"] = root_page.wait_for_url(
                target_url_pattern, timeout=self.timeouts.fallback
            )

        result = await race(branches, timeout, trigger=link.click)
        if result.label != "new_page":
            new_page.add_done_callback(self._close_late_page)

        if result.label == "new_page":
            target: Page = result.value
            await target.wait_for_load_state("domcontentloaded")
            await self._close_message_page(message_page)
            logger.info("Navigation race: new page %s", target.url)
            return target
        if result.label == "message_page":
            logger.info("Navigation race: message page reached %s", message_page.url)
            return message_page
        if result.label == "root_page":
            await self._close_message_page(message_page)
            logger.info("Navigation race: root page reached %s", root_page.url)
            return root_page

        if strict:
            raise NavigationTimeoutError(
                "message link",
                getattr(target_url_pattern, "pattern", target_url_pattern),
                timeout,
                {"url": message_page.url},
            )
        logger.warning(
            "Navigation race: no signal within %g ms, continuing on %s",
            timeout,
            message_page.url,
        )
        return message_page

    async def verify(
        self,
        marker: str,
        fragment: str,
        target_url_pattern: UrlPattern,
        cta_text: Optional[str] = None,
        path_markers: Sequence[str] = (),
        root_page: Optional[Page] = None,
        strict: bool = False,
    ) -> Page:
        """
        Run the whole verification round-trip.

        Returns:
            The page showing the verification result.
        """
        link = await self.find_candidate_link(marker, fragment)
        message_page = await self.follow_link(link)
        action = await self.resolve_second_stage_link(
            message_page, cta_text, path_markers
        )
        return await self.resolve_navigation_target(
            message_page, action, target_url_pattern, root_page=root_page, strict=strict
        )
