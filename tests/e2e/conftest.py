"""
Pytest fixtures for the live NoCowboys E2E scenarios.

This module provides fixtures for the browser, context and page, the
page objects, the email-log resolver, test accounts and unique sign-up
data. Every scenario here is marked ``live`` and skipped unless
E2E_BASE_URL points at a site under test.
"""

import importlib.util
import os
import random
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from ncb_e2e.config import Settings, get_settings
from ncb_e2e.email_links import email_fragment
from ncb_e2e.exceptions import MissingConfigError
from ncb_e2e.log import configure_logging

from .pages import (
    BusinessDashboardPage,
    BusinessSignupPage,
    CustomerDashboardPage,
    CustomerSignupPage,
    EmailLogsPage,
    HomePage,
    LoginPage,
)

E2E_DIR = Path(__file__).resolve().parent
PLAYWRIGHT_CONFIG = E2E_DIR.parents[1] / "playwright.config.py"


def _load_playwright_config():
    # The file name is not importable, so load it by path
    spec = importlib.util.spec_from_file_location("playwright_config", PLAYWRIGHT_CONFIG)
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


pw_config = _load_playwright_config()


# =============================================================================
# Collection
# =============================================================================

def pytest_collection_modifyitems(config, items):
    """Mark every scenario in this directory as live."""
    for item in items:
        if E2E_DIR in item.path.parents:
            item.add_marker(pytest.mark.live)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Hook to store test result for the failure screenshot."""
    outcome = yield
    rep = outcome.get_result()
    setattr(item, f"rep_{rep.when}", rep)


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class Account:
    """Existing account used by login scenarios."""
    email: str
    password: str
    display_name: str


@dataclass
class CustomerSignupData:
    """Customer registration data."""
    first_name: str
    last_name: str
    email: str
    phone_code: str
    phone_number: str
    password: str

    @property
    def fragment(self) -> str:
        return email_fragment(self.email)


@dataclass
class BusinessSignupData:
    """Business registration data."""
    business_name: str
    first_name: str
    last_name: str
    email: str
    phone_code: str
    phone_number: str
    password: str

    @property
    def fragment(self) -> str:
        return email_fragment(self.email)


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def settings() -> Settings:
    """Suite settings from the environment or E2E_CONFIG_FILE."""
    settings = get_settings()
    configure_logging(settings.logging)
    return settings


@pytest.fixture(autouse=True)
def require_live_site(settings: Settings) -> None:
    if not settings.live:
        pytest.skip("E2E_BASE_URL is not set")


@pytest.fixture(scope="session")
def base_url(settings: Settings) -> str:
    """Root URL of the site under test."""
    return settings.site.base_url


# =============================================================================
# Playwright Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def playwright() -> AsyncGenerator[Playwright, None]:
    """Create a Playwright instance for the test."""
    async with async_playwright() as pw:
        yield pw


@pytest_asyncio.fixture
async def browser(
    playwright: Playwright, settings: Settings
) -> AsyncGenerator[Browser, None]:
    """
    Launch the browser named by E2E_BROWSER (Chromium by default).
    """
    browser_config = pw_config.get_browser_config(os.environ.get("E2E_BROWSER", "chromium"))
    launch_options = browser_config.to_launch_options()
    launch_options.update(headless=settings.site.headless, slow_mo=settings.site.slow_mo)

    browser_type = getattr(playwright, browser_config.name)
    browser = await browser_type.launch(**launch_options)
    yield browser
    await browser.close()


def _test_failed(request) -> bool:
    report = getattr(request.node, "rep_call", None)
    return report is not None and report.failed


@pytest_asyncio.fixture
async def context(
    browser: Browser, settings: Settings, request
) -> AsyncGenerator[BrowserContext, None]:
    """
    Create a new browser context for each test.

    The context carries the site's base URL and the staging basic-auth
    credentials, so page objects can navigate by path. With
    E2E_RECORD_TRACE set, a trace is recorded and kept for failed tests.
    """
    options = pw_config.get_browser_config(browser.browser_type.name).to_context_options()
    options["base_url"] = settings.site.base_url
    credentials = settings.http_auth.to_credentials()
    if credentials:
        options["http_credentials"] = credentials

    context = await browser.new_context(**options)
    context.set_default_timeout(pw_config.config.timeout)

    tracing = pw_config.config.trace_mode != "off"
    if tracing:
        await context.tracing.start(screenshots=True, snapshots=True)

    yield context

    if tracing:
        if _test_failed(request):
            pw_config.config.ensure_directories()
            await context.tracing.stop(path=str(pw_config.get_trace_path(request.node.name)))
        else:
            await context.tracing.stop()
    await context.close()


@pytest_asyncio.fixture
async def page(context: BrowserContext, request) -> AsyncGenerator[Page, None]:
    """
    Create the scenario's main page; a screenshot is saved if the test fails.
    """
    page = await context.new_page()

    yield page

    if _test_failed(request) and not page.is_closed():
        pw_config.config.ensure_directories()
        await page.screenshot(
            path=str(pw_config.get_screenshot_path(request.node.name)),
            full_page=True,
        )


# =============================================================================
# Account Fixtures
# =============================================================================

@pytest.fixture
def customer_account(settings: Settings) -> Account:
    """The configured customer account; skips when it is not configured."""
    try:
        return Account(*settings.accounts.require_customer())
    except MissingConfigError as e:
        pytest.skip(str(e))


@pytest.fixture
def business_account(settings: Settings) -> Account:
    """The configured business account; skips when it is not configured."""
    try:
        return Account(*settings.accounts.require_business())
    except MissingConfigError as e:
        pytest.skip(str(e))


# =============================================================================
# Page Object Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def home_page(page: Page, base_url: str, settings: Settings) -> HomePage:
    """Create a HomePage instance."""
    return HomePage(page, base_url, settings.timeouts)


@pytest_asyncio.fixture
async def login_page(page: Page, base_url: str) -> LoginPage:
    """Create a LoginPage instance."""
    return LoginPage(page, base_url)


@pytest_asyncio.fixture
async def customer_signup_page(page: Page, base_url: str) -> CustomerSignupPage:
    return CustomerSignupPage(page, base_url)


@pytest_asyncio.fixture
async def business_signup_page(page: Page, base_url: str) -> BusinessSignupPage:
    return BusinessSignupPage(page, base_url)


@pytest_asyncio.fixture
async def email_logs_page(page: Page, base_url: str, settings: Settings) -> EmailLogsPage:
    """Email-log viewer sharing the scenario's main page."""
    return EmailLogsPage(page, base_url, settings.timeouts, settings.site.email_log_path)


@pytest_asyncio.fixture
async def customer_dashboard(page: Page, base_url: str) -> CustomerDashboardPage:
    return CustomerDashboardPage(page, base_url)


@pytest_asyncio.fixture
async def business_dashboard(page: Page, base_url: str) -> BusinessDashboardPage:
    return BusinessDashboardPage(page, base_url)


# =============================================================================
# Authenticated Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def logged_in_customer(
    home_page: HomePage,
    login_page: LoginPage,
    customer_dashboard: CustomerDashboardPage,
    customer_account: Account,
) -> CustomerDashboardPage:
    """Log in through the home page and land on the customer dashboard."""
    await home_page.goto()
    await home_page.click_login()
    await login_page.login_as_customer(customer_account.email, customer_account.password)
    await customer_dashboard.wait_for_page_load()
    return customer_dashboard


@pytest_asyncio.fixture
async def logged_in_business(
    home_page: HomePage,
    login_page: LoginPage,
    business_dashboard: BusinessDashboardPage,
    business_account: Account,
) -> BusinessDashboardPage:
    """Log in through the home page and land on the business dashboard."""
    await home_page.goto()
    await home_page.click_login()
    await login_page.login_as_business(business_account.email, business_account.password)
    await business_dashboard.wait_for_page_load()
    return business_dashboard


# =============================================================================
# Test Data Generators
# =============================================================================

def _stamp() -> str:
    return f"{int(time.time() * 1000)}{random.randint(0, 9999)}"


@pytest.fixture
def customer_signup_data() -> CustomerSignupData:
    """Unique customer registration data."""
    return CustomerSignupData(
        first_name="Serhiy",
        last_name="Coursor-Test",
        email=f"serhiy.polyakov+coursor{_stamp()}@greenice.net",
        phone_code="123",
        phone_number="1234567",
        password="Password123",
    )


@pytest.fixture
def business_signup_data() -> BusinessSignupData:
    """Unique business registration data."""
    return BusinessSignupData(
        business_name=f"CursorTestBusiness{random.randint(1000, 9999)}",
        first_name="Serhii",
        last_name="Bususer",
        email=f"cursor-test-business{random.randint(10000, 99999)}@greenice.net",
        phone_code="123",
        phone_number="1112233",
        password="password123",
    )


@pytest.fixture
def unique_job_title() -> str:
    """Generate a unique job title for tests."""
    return f"Cursor Test Job from Bruno{random.randint(10000, 99999)}"
