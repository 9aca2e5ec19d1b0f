"""Fixed scoping catalog and canned copy offered by the chat client."""

from __future__ import annotations

from typing import Final

PRODUCT_AREAS: Final[tuple[str, ...]] = (
    "Account Management",
    "Security & Compliance",
    "Identity & Access",
    "Finance & Billing",
    "Talent Acquisition",
    "Employee Lifecycle",
    "HR Operations",
    "Integration & API",
    "Analytics & Reporting",
    "Customer Support",
)

SECTIONS: Final[tuple[str, ...]] = (
    "Account & Access",
    "Single Sign-On (SSO)",
    "Billing & Subscriptions",
    "Hiring & ATS",
    "Onboarding & Offboarding",
    "Time-off & Leave Management",
    "Payroll Integrations & Data",
    "Performance & Reviews",
    "Compensation Management",
    "Compliance & Security",
    "APIs & Developer Tools",
    "Integrations & Automations",
    "Reporting & Analytics",
    "Troubleshooting & Support",
)

SUGGESTED_QUESTIONS: Final[tuple[str, ...]] = (
    "How do I create an account?",
    "How do I invite users?",
    "What SSO providers are supported?",
    "How does billing work?",
    "How do I manage time-off requests?",
    "What payroll integrations are available?",
)

DEFAULT_GREETING: Final[str] = (
    "Hello! I'm your HRCare RAG-powered assistant. I answer questions based on "
    "HRCare's internal documentation using Retrieval-Augmented Generation (RAG). "
    "Ask me anything about HRCare features, account management, SSO, billing, "
    "hiring, onboarding, and more!\n\n"
    'You can also browse the full documentation: <a href="/docs">View Documentation</a>'
)


def resolve_option(value: str | None, options: tuple[str, ...]) -> str | None:
    """Match ``value`` against ``options`` case-insensitively.

    Empty values mean "all" and resolve to ``None``. Unknown values raise
    ``ValueError`` so callers can reject the selection.
    """

    if value is None:
        return None
    needle = value.strip()
    if not needle:
        return None
    for option in options:
        if option.casefold() == needle.casefold():
            return option
    raise ValueError(f"Unknown option: {value!r}")
