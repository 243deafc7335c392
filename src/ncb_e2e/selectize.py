"""
Selectize dependent-field helpers.

Selectize replaces a ``<select>`` with a ``.selectize-control`` wrapper:
a ``.selectize-input`` box holding a text input and the committed
``.item`` elements, and a ``.selectize-dropdown`` with ``.option``
elements that are created while the user types. Dropdowns are kept in
the DOM after they close, so only options with a rendered box count.

Fields that depend on a previous choice carry the ``disabled`` class
until the page's script has loaded their options. The widget raises no
event for that, so enablement is detected by polling.
"""

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import TimeoutSettings
from .exceptions import AmbiguousOptionWarning, FieldDisabledError, OptionNotFoundError

logger = logging.getLogger(__name__)

OPTION_SELECTOR = ".selectize-dropdown .option, .selectize-dropdown [data-selectable]"

_IS_ENABLED = """
el => {
    if (el.classList.contains('disabled')) return false;
    const box = el.querySelector('.selectize-input');
    if (!box || box.classList.contains('disabled')) return false;
    return box.offsetParent !== null;
}
"""

_SCRAPE_OPTIONS = """
els => els.map(el => ({
    text: (el.textContent || '').trim(),
    visible: el.offsetParent !== null,
}))
"""

_HAS_VISIBLE_OPTION = """
selector => Array.from(document.querySelectorAll(selector))
    .some(el => el.offsetParent !== null)
"""


class FieldState(Enum):
    """Lifecycle of a dependent field within one fill."""

    DISABLED = "disabled"
    ENABLED = "enabled"
    TYPING = "typing"
    OPTIONS_PENDING = "options_pending"
    OPTIONS_READY = "options_ready"
    SELECTED = "selected"


@dataclass(frozen=True)
class SelectOption:
    """A dropdown option element, identified by its DOM position."""

    index: int
    text: str
    visible: bool = True


def _fold(text: str) -> str:
    return " ".join(text.split()).casefold()


def count_exact(options: Sequence[SelectOption], text: str) -> int:
    """Count visible options whose trimmed text equals ``text`` exactly."""
    wanted = text.strip()
    return sum(1 for o in options if o.visible and o.text.strip() == wanted)


def choose_option(
    options: Sequence[SelectOption], text: str, field: str = "dropdown"
) -> SelectOption:
    """
    Pick the visible option whose text equals ``text``, ignoring case.

    The first match in document order wins; when several options match an
    ``AmbiguousOptionWarning`` is emitted.

    Raises:
        OptionNotFoundError: If no visible option matches.
    """
    visible = [o for o in options if o.visible]
    wanted = _fold(text)
    matches = [o for o in visible if _fold(o.text) == wanted]
    if not matches:
        raise OptionNotFoundError(field, text, [o.text for o in visible])
    if len(matches) > 1:
        warnings.warn(
            f"Dropdown '{field}': {len(matches)} visible options match "
            f"'{text}'; using the first",
            AmbiguousOptionWarning,
            stacklevel=2,
        )
    return matches[0]


class SelectizeField:
    """One Selectize control on a page."""

    def __init__(
        self,
        page: Page,
        control_selector: str,
        name: Optional[str] = None,
        settings: Optional[TimeoutSettings] = None,
    ):
        self.page = page
        self.control_selector = control_selector
        self.name = name or control_selector
        self.timeouts = settings or TimeoutSettings()
        self.state = FieldState.DISABLED

    @property
    def control(self) -> Locator:
        """The ``.selectize-control`` wrapper."""
        return self.page.locator(self.control_selector).first

    @property
    def input_box(self) -> Locator:
        """The visible box holding the text input and committed items."""
        return self.control.locator(".selectize-input")

    @property
    def input(self) -> Locator:
        """Text input used to filter options."""
        return self.control.locator(".selectize-input input")

    @property
    def items(self) -> Locator:
        """Committed selections."""
        return self.control.locator(".selectize-input .item")

    @property
    def options(self) -> Locator:
        """Every dropdown option on the page, hidden ones included."""
        return self.page.locator(OPTION_SELECTOR)

    async def is_enabled(self) -> bool:
        """Check whether the field accepts input right now."""
        if await self.control.count() == 0:
            return False
        enabled = await self.control.evaluate(_IS_ENABLED)
        if enabled and self.state is FieldState.DISABLED:
            self.state = FieldState.ENABLED
        return enabled

    async def wait_until_enabled(
        self, timeout: Optional[float] = None, interval: Optional[float] = None
    ) -> bool:
        """
        Poll until the field is enabled.

        Args:
            timeout: Upper bound in milliseconds.
            interval: Delay between checks in milliseconds.

        Returns:
            True once enabled, False when the timeout ran out.
        """
        timeout = timeout if timeout is not None else self.timeouts.enable
        interval = interval if interval is not None else self.timeouts.poll_interval

        waited = 0.0
        while True:
            if await self.is_enabled():
                logger.debug("Dropdown '%s' enabled after %g ms", self.name, waited)
                return True
            if waited >= timeout:
                logger.debug("Dropdown '%s' still disabled after %g ms", self.name, timeout)
                return False
            await self.page.wait_for_timeout(interval)
            waited += interval

    async def type(self, query: str) -> None:
        """Focus the field and type ``query`` to filter its options."""
        await self.input.click(force=True)
        await self.input.fill(query)
        self.state = FieldState.TYPING

    async def open(self) -> None:
        """Focus the field without typing so it lists all options."""
        await self.input.click(force=True)
        self.state = FieldState.OPTIONS_PENDING

    async def wait_for_options(self, timeout: Optional[float] = None) -> int:
        """
        Wait for at least one visible option.

        Returns:
            Number of visible options, 0 when none showed up in time.
        """
        timeout = timeout if timeout is not None else self.timeouts.options
        self.state = FieldState.OPTIONS_PENDING
        try:
            await self.page.wait_for_function(
                _HAS_VISIBLE_OPTION, arg=OPTION_SELECTOR, timeout=timeout
            )
        except PlaywrightTimeoutError:
            logger.debug("Dropdown '%s': no options within %g ms", self.name, timeout)
            self.state = FieldState.OPTIONS_READY
            return 0
        self.state = FieldState.OPTIONS_READY
        return len(await self.visible_options())

    async def visible_options(self) -> list[SelectOption]:
        """Options currently rendered in an open dropdown, in DOM order."""
        rows = await self.options.evaluate_all(_SCRAPE_OPTIONS)
        return [
            SelectOption(index=i, text=row["text"], visible=row["visible"])
            for i, row in enumerate(rows)
            if row["visible"]
        ]

    async def select(self, text: str) -> SelectOption:
        """
        Click the visible option whose text equals ``text`` (case-insensitive).

        Raises:
            OptionNotFoundError: If no visible option matches.
        """
        option = choose_option(await self.visible_options(), text, field=self.name)
        await self.options.nth(option.index).click(force=True)
        self.state = FieldState.SELECTED
        logger.info("Dropdown '%s': selected '%s'", self.name, option.text)
        return option

    async def verify_exclusive_option(self, text: str) -> None:
        """Assert exactly one visible option reads ``text``."""
        options = await self.visible_options()
        count = count_exact(options, text)
        if count != 1:
            raise AssertionError(
                f"Dropdown '{self.name}': expected exactly one visible option "
                f"'{text}', found {count} among {[o.text for o in options]}"
            )

    async def selected_text(self) -> str:
        """Text of the committed item(s), comma separated."""
        texts = await self.items.all_inner_texts()
        return ", ".join(t.strip() for t in texts)

    async def is_cleared(self) -> bool:
        """True when nothing is committed and the input is empty."""
        if await self.items.count() > 0:
            return False
        return not (await self.input.input_value()).strip()


class CascadingSelector:
    """
    Fills a chain of dependent fields in order.

    Every field is polled until it is enabled: the first one until the
    page script has built it, the others until the previous selection has
    loaded their options.
    """

    def __init__(self, fields: Sequence[SelectizeField]):
        self.fields = list(fields)

    async def fill(
        self,
        values: Sequence[str],
        queries: Optional[Sequence[Optional[str]]] = None,
        exclusive: bool = False,
    ) -> None:
        """
        Select ``values`` in the chain's fields.

        Args:
            values: Option text to select per field. May be shorter than
                the chain to fill only its leading fields.
            queries: Text to type per field; defaults to ``values``. An
                empty query opens the field without typing.
            exclusive: Assert that each query narrows the dropdown to a
                single option equal to the value.

        Raises:
            FieldDisabledError: If a field does not become enabled.
            OptionNotFoundError: If a value is not among the options.
        """
        if len(values) > len(self.fields):
            raise ValueError(
                f"{len(values)} values for a chain of {len(self.fields)} fields"
            )
        queries = list(queries) if queries is not None else list(values)
        if len(queries) != len(values):
            raise ValueError("queries and values differ in length")

        for field, value, query in zip(self.fields, values, queries):
            if not await field.wait_until_enabled():
                raise FieldDisabledError(field.name, field.timeouts.enable)

            if query:
                await field.type(query)
            else:
                await field.open()
            await field.wait_for_options()
            if exclusive:
                await field.verify_exclusive_option(value)
            await field.select(value)
