"""Meta (Facebook/Instagram) Marketing API adapter.

Campaigns are created through the Graph API as a campaign -> ad set ->
creative/ad chain. Everything is created PAUSED; activation is a separate
lifecycle action.
"""

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from launchpad.adapters.base import PlatformAdapter
from launchpad.core.config import MetaAdsConfig
from launchpad.core.exceptions import ChannelError, ChannelFailureClass
from launchpad.core.schemas import (
    CampaignStatus,
    CampaignUpdate,
    Channel,
    ChannelCampaign,
    ChannelLaunchRequest,
    ChannelMetrics,
    CreativeCopy,
    LaunchVariant,
)

logger = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"

OBJECTIVE_MAP = {
    "awareness": "REACH",
    "traffic": "LINK_CLICKS",
    "leads": "LEAD_GENERATION",
    "conversions": "CONVERSIONS",
    "engagement": "ENGAGEMENT",
    "video_views": "VIDEO_VIEWS",
}
DEFAULT_OBJECTIVE = "REACH"

# Checked in order; first keyword hit wins
CTA_KEYWORDS = [
    (("book", "schedule", "appointment"), "BOOK_TRAVEL"),
    (("call", "contact"), "CALL_NOW"),
    (("sign up", "register"), "SIGN_UP"),
    (("get", "download"), "DOWNLOAD"),
    (("learn", "more"), "LEARN_MORE"),
    (("shop", "buy"), "SHOP_NOW"),
]
DEFAULT_CTA = "LEARN_MORE"

BASE_INTERESTS = [
    {"id": "6003277229502", "name": "Mental health"},
    {"id": "6003348617349", "name": "Therapy"},
]
LEAD_CAPTURE_INTERESTS = BASE_INTERESTS + [
    {"id": "6003144207542", "name": "Psychology"},
    {"id": "6003139266461", "name": "Wellness"},
]
AUDIENCE_INTERESTS = [
    (("anxiety",), {"id": "6003120596077", "name": "Anxiety"}),
    (("depression",), {"id": "6003139938061", "name": "Depression awareness"}),
    (("couples", "relationship"), {"id": "6003139817726", "name": "Relationship counseling"}),
]
BEHAVIORS = [{"id": "6017253486583", "name": "Interested in mental health and wellness"}]
LIFE_EVENTS = [
    {"id": "6002714398372", "name": "Recently moved"},
    {"id": "6002714398432", "name": "New job"},
    {"id": "6015559470583", "name": "Major life change"},
]

INSIGHT_FIELDS = ["impressions", "clicks", "conversions", "spend", "ctr", "cpc", "cost_per_lead"]


def map_objective(objective: str | None) -> str:
    return OBJECTIVE_MAP.get((objective or "").lower().replace("-", "_"), DEFAULT_OBJECTIVE)


def map_call_to_action(text: str | None) -> str:
    """Map free-text call to action onto one of Meta's CTA types."""
    if not text:
        return DEFAULT_CTA
    lowered = text.lower()
    for keywords, cta_type in CTA_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return cta_type
    return DEFAULT_CTA


def daily_budget_cents(total_budget: Decimal) -> int:
    """Monthly budget spread over 30 days, in cents."""
    return int((Decimal(total_budget) * 100 / 30).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_targeting(target_audience: str) -> dict[str, Any]:
    """Derive basic demographic targeting from the audience description."""
    targeting: dict[str, Any] = {
        "age_min": 25,
        "age_max": 65,
        "genders": [1, 2],
        "geo_locations": {"countries": ["US"]},
        "interests": list(BASE_INTERESTS),
        "behaviors": list(BEHAVIORS),
    }

    audience = (target_audience or "").lower()
    if "women" in audience or "female" in audience:
        targeting["genders"] = [2]
    elif "men" in audience or "male" in audience:
        targeting["genders"] = [1]

    if "young" in audience or "college" in audience:
        targeting["age_min"], targeting["age_max"] = 18, 35
    elif "senior" in audience or "elderly" in audience:
        targeting["age_min"], targeting["age_max"] = 55, 65

    return targeting


def build_lead_capture_targeting(target_audience: str, city: str | None) -> dict[str, Any]:
    """Broader interest and life-event targeting for lead generation, narrowed to the owner's city."""
    geo: dict[str, Any] = {"countries": ["US"]}
    if city:
        geo["cities"] = [{"key": "_".join(city.lower().split()), "radius": 25, "distance_unit": "mile"}]

    targeting: dict[str, Any] = {
        "age_min": 25,
        "age_max": 65,
        "genders": [1, 2],
        "geo_locations": geo,
        "interests": list(LEAD_CAPTURE_INTERESTS),
        "behaviors": list(BEHAVIORS),
        "life_events": list(LIFE_EVENTS),
    }

    audience = (target_audience or "").lower()
    for keywords, interest in AUDIENCE_INTERESTS:
        if any(keyword in audience for keyword in keywords):
            targeting["interests"].append(interest)

    return targeting


def _to_number(value: Any) -> float:
    """Insight values arrive as strings, or as action lists for conversion-type fields."""
    if value is None:
        return 0.0
    if isinstance(value, list):
        return sum(_to_number(item.get("value")) for item in value if isinstance(item, dict))
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class MetaAdsAdapter(PlatformAdapter):
    """
    Adapter for the Meta Marketing API (Graph API).
    """

    adapter_name = "meta"
    channel = Channel.META

    def __init__(self, config: MetaAdsConfig, dry_run: bool = False, timeout: int = 30):
        super().__init__(config, dry_run=dry_run, timeout=timeout)
        self.base_url = f"{GRAPH_API_BASE}/{config.api_version}"
        self.ad_account_id = config.ad_account_id
        self.page_id = config.page_id
        self._dry_run_counter = 0

        if self.dry_run:
            self.log("Running in dry-run mode - Meta API calls will be simulated", dry_run_prefix=False)
        elif not self.is_configured():
            logger.warning("Meta Ads API credentials not configured")

    def is_configured(self) -> bool:
        return self.config.is_configured

    # HTTP plumbing

    def _params(self, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        params = {"access_token": self.config.access_token}
        if extra:
            params.update(extra)
        return params

    def _post(self, path: str, payload: dict[str, Any], operation: str) -> dict[str, Any]:
        url = f"{self.base_url}/{path}"
        if self.dry_run:
            self._dry_run_counter += 1
            self.log(f"Would call: POST {url}")
            self.log(f"  Payload: {json.dumps(payload, default=str)}")
            return {"id": f"dry_run_{operation.replace(' ', '_')}_{self._dry_run_counter}", "success": True}

        # Graph API takes nested objects as JSON-encoded form fields
        data = {key: json.dumps(value) if isinstance(value, dict | list) else value for key, value in payload.items()}
        return self._request("POST", url, operation, params=self._params(), data=data)

    def _get(self, path: str, operation: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}/{path}"
        if self.dry_run:
            self.log(f"Would call: GET {url}")
            return {"data": []}
        return self._request("GET", url, operation, params=self._params(params))

    def _created_id(self, response: dict[str, Any], operation: str) -> str:
        created_id = response.get("id")
        if not created_id:
            raise ChannelError(
                self.channel.value, f"Meta {operation} returned no id: {response}", ChannelFailureClass.UNKNOWN
            )
        return str(created_id)

    # Campaign creation

    def create_campaign(self, request: ChannelLaunchRequest) -> ChannelCampaign:
        self.ensure_configured()
        lead_capture = request.variant == LaunchVariant.LEAD_CAPTURE
        self.log(
            f"[bold]Meta.create_campaign[/bold] for '{request.name}' "
            f"({'lead capture' if lead_capture else 'standard'}, token {request.idempotency_token})",
            dry_run_prefix=False,
        )

        # Filled in as each resource is created so a failure can report what exists
        resources: dict[str, Any] = {}
        try:
            if lead_capture:
                self._create_lead_capture(request, resources)
            else:
                self._create_standard(request, resources)
        except ChannelError as e:
            partial_id = resources.get("campaign_id")
            if partial_id:
                e.resource_ids = dict(resources)
                logger.error(
                    f"Meta campaign {partial_id} left incomplete for campaign {request.campaign_id}; "
                    "needs manual reconciliation"
                )
            self.audit_logger.log_operation(
                operation="create_campaign",
                campaign_id=request.campaign_id,
                external_id=partial_id,
                success=False,
                error=str(e),
                details={
                    "idempotency_token": request.idempotency_token,
                    "failure_class": e.failure_class.value,
                    "partial_resources": dict(resources),
                },
            )
            raise

        external_id = resources["campaign_id"]
        self.audit_logger.log_operation(
            operation="create_campaign",
            campaign_id=request.campaign_id,
            external_id=external_id,
            success=True,
            details={
                "idempotency_token": request.idempotency_token,
                "variant": request.variant.value,
                "ads_created": len(resources.get("ads", [])),
            },
        )
        logger.info(f"Meta campaign created: {external_id} for campaign {request.campaign_id}")
        return ChannelCampaign(external_id=external_id, resource_ids=resources)

    def _create_standard(self, request: ChannelLaunchRequest, resources: dict[str, Any]) -> dict[str, Any]:
        campaign_id = self._created_id(
            self._post(
                f"{self.ad_account_id}/campaigns",
                {
                    "name": request.name,
                    "objective": map_objective(request.objective),
                    "status": "PAUSED",
                    "special_ad_categories": list(self.config.special_ad_categories),
                },
                "campaign create",
            ),
            "campaign create",
        )
        resources["campaign_id"] = campaign_id

        ad_set_id = self._created_id(
            self._post(
                f"{self.ad_account_id}/adsets",
                {
                    "name": f"{request.name} - Ad Set",
                    "campaign_id": campaign_id,
                    "daily_budget": daily_budget_cents(request.total_budget),
                    "billing_event": "IMPRESSIONS",
                    "optimization_goal": "REACH",
                    "targeting": build_targeting(request.target_audience),
                    "status": "PAUSED",
                },
                "ad set create",
            ),
            "ad set create",
        )
        resources["ad_set_id"] = ad_set_id
        resources["ads"] = []

        if not self.page_id:
            # Ad creatives are published as page posts
            logger.warning(f"META_PAGE_ID not set; ads skipped for campaign {request.campaign_id}")
            self.audit_logger.log_warning(f"Ads skipped for campaign {request.campaign_id}: no page configured")
            return resources

        for index, creative in enumerate(request.creatives, start=1):
            resources["ads"].append(self._create_ad(request, ad_set_id, creative, index))
        return resources

    def _create_lead_capture(self, request: ChannelLaunchRequest, resources: dict[str, Any]) -> dict[str, Any]:
        campaign_id = self._created_id(
            self._post(
                f"{self.ad_account_id}/campaigns",
                {
                    "name": f"{request.name} - Lead Gen",
                    "objective": "LEAD_GENERATION",
                    "status": "PAUSED",
                    "special_ad_categories": list(self.config.special_ad_categories),
                },
                "lead campaign create",
            ),
            "lead campaign create",
        )
        resources["campaign_id"] = campaign_id

        ad_set_payload: dict[str, Any] = {
            "name": f"{request.name} - Lead Gen Ad Set",
            "campaign_id": campaign_id,
            "daily_budget": daily_budget_cents(request.total_budget),
            "billing_event": "IMPRESSIONS",
            "optimization_goal": "LEAD_GENERATION",
            "targeting": build_lead_capture_targeting(request.target_audience, request.city),
            "status": "PAUSED",
        }
        if self.page_id:
            ad_set_payload["promoted_object"] = {"page_id": self.page_id}
        ad_set_id = self._created_id(
            self._post(f"{self.ad_account_id}/adsets", ad_set_payload, "lead ad set create"), "lead ad set create"
        )
        resources["ad_set_id"] = ad_set_id
        resources["ads"] = []

        if not self.page_id:
            # Instant forms belong to a page; without one the ad set is left for manual setup
            logger.warning(f"META_PAGE_ID not set; lead form and ads skipped for campaign {request.campaign_id}")
            self.audit_logger.log_warning(f"Lead form and ads skipped for campaign {request.campaign_id}: no page configured")
            return resources

        form_id = self._created_id(
            self._post(f"{self.page_id}/leadgen_forms", self._lead_form(request), "lead form create"),
            "lead form create",
        )
        resources["lead_form_id"] = form_id
        for index, creative in enumerate(request.creatives, start=1):
            resources["ads"].append(self._create_ad(request, ad_set_id, creative, index, lead_form_id=form_id))
        return resources

    def _lead_form(self, request: ChannelLaunchRequest) -> dict[str, Any]:
        site = request.landing_page_url.split("/lp/")[0]
        return {
            "name": f"{request.name} - Contact Form",
            "privacy_policy": {"url": f"{site}/privacy"},
            "questions": [
                {"type": "FULL_NAME", "key": "full_name"},
                {"type": "EMAIL", "key": "email"},
                {"type": "PHONE", "key": "phone_number"},
                {
                    "type": "CUSTOM",
                    "key": "preferred_contact_time",
                    "label": "Preferred contact time",
                    "options": [{"value": "Morning"}, {"value": "Afternoon"}, {"value": "Evening"}],
                },
                {"type": "CUSTOM", "key": "reason", "label": "What brings you here today?"},
            ],
            "thank_you_page": {
                "title": "Thank you",
                "body": "Thank you for reaching out. We'll contact you within 24 hours to schedule your consultation.",
                "button_text": "Continue",
                "button_type": "VIEW_WEBSITE",
                "website_url": f"{site}/thank-you",
            },
        }

    def _create_ad(
        self,
        request: ChannelLaunchRequest,
        ad_set_id: str,
        creative: CreativeCopy,
        index: int,
        lead_form_id: str | None = None,
    ) -> dict[str, Any]:
        call_to_action: dict[str, Any] = {"type": map_call_to_action(creative.call_to_action)}
        if lead_form_id:
            call_to_action = {"type": "SIGN_UP", "value": {"lead_gen_form_id": lead_form_id}}

        link_data: dict[str, Any] = {
            "call_to_action": call_to_action,
            "description": creative.description,
            "link": request.landing_page_url,
            "message": creative.headline,
            "name": f"{request.name} - {creative.headline[:30]}",
        }
        if creative.image_url:
            link_data["picture"] = creative.image_url

        creative_id = self._created_id(
            self._post(
                f"{self.ad_account_id}/adcreatives",
                {
                    "name": f"{request.name} - Creative {index}",
                    "object_story_spec": {"page_id": self.page_id, "link_data": link_data},
                },
                "creative create",
            ),
            "creative create",
        )

        ad_id = self._created_id(
            self._post(
                f"{self.ad_account_id}/ads",
                {
                    "name": f"{request.name} - Ad {index}",
                    "adset_id": ad_set_id,
                    "creative": {"creative_id": creative_id},
                    "status": "PAUSED",
                },
                "ad create",
            ),
            "ad create",
        )
        return {"ad_id": ad_id, "creative_id": creative_id, "source_creative_id": creative.source_creative_id}

    # Lifecycle

    def pause(self, external_id: str) -> None:
        self.update(external_id, CampaignUpdate(status=CampaignStatus.PAUSED))

    def update(self, external_id: str, fields: CampaignUpdate) -> None:
        self.ensure_configured()
        payload: dict[str, Any] = {}
        if fields.name:
            payload["name"] = fields.name
        if fields.status:
            payload["status"] = "ACTIVE" if fields.status == CampaignStatus.ACTIVE else "PAUSED"

        if payload:
            self._post(external_id, payload, "campaign update")
            logger.info(f"Meta campaign updated: {external_id} ({', '.join(payload)})")

        if fields.budget is not None:
            # Meta budgets live on the ad sets, not the campaign
            ad_sets = self._get(f"{external_id}/adsets", "ad set lookup", {"fields": "id"}).get("data", [])
            for ad_set in ad_sets:
                self._post(ad_set["id"], {"daily_budget": daily_budget_cents(fields.budget)}, "ad set budget update")
            logger.info(f"Meta budget updated on {len(ad_sets)} ad set(s) of campaign {external_id}")

        self.audit_logger.log_operation(
            operation="update_campaign",
            external_id=external_id,
            success=True,
            details=fields.model_dump(mode="json", exclude_none=True),
        )

    def get_metrics(self, external_id: str) -> ChannelMetrics:
        self.ensure_configured()
        response = self._get(
            f"{external_id}/insights",
            "metrics read",
            {"fields": ",".join(INSIGHT_FIELDS), "date_preset": "maximum"},
        )
        rows = response.get("data") or []
        if not rows:
            return ChannelMetrics()

        row = rows[0]
        return ChannelMetrics(
            impressions=int(_to_number(row.get("impressions"))),
            clicks=int(_to_number(row.get("clicks"))),
            conversions=_to_number(row.get("conversions")),
            cost=_to_number(row.get("spend")),
            ctr=_to_number(row.get("ctr")),
            cpc=_to_number(row.get("cpc")),
            cpl=_to_number(row.get("cost_per_lead")),
        )

    def check_connection(self) -> dict[str, Any]:
        if not self.is_configured():
            return {"success": False, "error": "Meta Ads API not configured"}
        if self.dry_run:
            return {"success": True, "dry_run": True, "api_version": self.config.api_version}

        try:
            account = self._get(self.ad_account_id, "account read", {"fields": "name,account_status,currency"})
        except ChannelError as e:
            return {"success": False, "error": str(e)}

        self.audit_logger.log_success(f"Connected to Meta ad account {self.ad_account_id}")
        return {
            "success": True,
            "account_name": account.get("name"),
            "account_status": account.get("account_status"),
            "currency": account.get("currency"),
            "api_version": self.config.api_version,
        }
