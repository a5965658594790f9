"""Submission eligibility and compliance rules for campaigns.

``validate_campaign`` is pure: it only reads the snapshot it is given, so the
same snapshot always produces the same result.
"""

from decimal import Decimal

from launchpad.core.schemas import VALID_CHANNELS, CampaignSnapshot, ValidationResult

MIN_NAME_LENGTH = 3
MIN_AUDIENCE_LENGTH = 10
MIN_BUDGET = Decimal("100")
HIGH_BUDGET_THRESHOLD = Decimal("50000")
MIN_HEADLINE_LENGTH = 5
MIN_DESCRIPTION_LENGTH = 10

# Absolute claims and clinical overreach are not allowed in health-adjacent advertising.
# Matched case-insensitively as substrings.
PROHIBITED_TERMS = (
    # guaranteed outcomes
    "guaranteed cure",
    "guaranteed results",
    "miracle treatment",
    "instant results",
    "100% effective",
    # diagnostic and prescriptive claims
    "diagnose",
    "prescription",
    "medical advice",
    # superlative competitive claims
    "cheapest",
    "best therapist",
    "only solution",
)


def _text_fields(campaign: CampaignSnapshot) -> list[str]:
    fields = [campaign.name, campaign.target_audience, *campaign.objectives]
    for creative in campaign.creatives:
        fields.extend([creative.headline, creative.description, creative.call_to_action or ""])
    return [field for field in fields if field]


def find_prohibited_terms(campaign: CampaignSnapshot) -> list[str]:
    """Return every prohibited term that appears in any single field of the campaign copy."""
    fields = [field.lower() for field in _text_fields(campaign)]
    return [term for term in PROHIBITED_TERMS if any(term in field for field in fields)]


def validate_campaign(campaign: CampaignSnapshot) -> ValidationResult:
    """Check whether a campaign may be submitted for review.

    Errors block submission, warnings don't.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if len(campaign.name.strip()) < MIN_NAME_LENGTH:
        errors.append(f"Campaign name must be at least {MIN_NAME_LENGTH} characters long")

    if len(campaign.target_audience.strip()) < MIN_AUDIENCE_LENGTH:
        errors.append(f"Target audience description must be at least {MIN_AUDIENCE_LENGTH} characters")

    if not campaign.objectives:
        errors.append("At least one campaign objective is required")

    if campaign.budget < MIN_BUDGET:
        errors.append(f"Minimum budget is ${MIN_BUDGET}")
    elif campaign.budget > HIGH_BUDGET_THRESHOLD:
        warnings.append("High budget campaigns require additional review time")

    if not campaign.channel_selection:
        errors.append("At least one advertising channel must be selected")
    else:
        unknown = [channel for channel in campaign.channel_selection if channel not in VALID_CHANNELS]
        if unknown:
            errors.append(
                f"Unsupported advertising channel(s): {', '.join(unknown)}. "
                f"Valid channels are {', '.join(sorted(VALID_CHANNELS))}"
            )

    if not campaign.creatives:
        warnings.append("No creatives found - campaign will use default text only")
    else:
        for index, creative in enumerate(campaign.creatives, start=1):
            if len(creative.headline) < MIN_HEADLINE_LENGTH:
                errors.append(f"Creative {index}: Headline must be at least {MIN_HEADLINE_LENGTH} characters")
            if len(creative.description) < MIN_DESCRIPTION_LENGTH:
                errors.append(
                    f"Creative {index}: Description must be at least {MIN_DESCRIPTION_LENGTH} characters"
                )

    prohibited = find_prohibited_terms(campaign)
    if prohibited:
        errors.append(f"Campaign contains prohibited content: {', '.join(prohibited)}")

    return ValidationResult(errors=errors, warnings=warnings)
