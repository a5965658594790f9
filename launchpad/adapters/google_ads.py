"""Google Ads adapter.

Talks to the Google Ads REST interface directly: each resource is created with
its own ``:mutate`` call, reporting goes through ``googleAds:search`` (GAQL).
Access tokens are minted from the configured OAuth refresh token and cached
until shortly before they expire.
"""

import json
import logging
import threading
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from launchpad.adapters.base import PlatformAdapter
from launchpad.core.config import GoogleAdsConfig
from launchpad.core.exceptions import ChannelError, ChannelFailureClass
from launchpad.core.schemas import (
    CampaignStatus,
    CampaignUpdate,
    Channel,
    ChannelCampaign,
    ChannelLaunchRequest,
    ChannelMetrics,
    LaunchVariant,
)

logger = logging.getLogger(__name__)

GOOGLE_ADS_API_BASE = "https://googleads.googleapis.com"
OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
TOKEN_EXPIRY_MARGIN_SECONDS = 60

MICROS = Decimal("1000000")
TARGET_CPA_MICROS = 50 * 1_000_000
MAX_CPC_MICROS = 2 * 1_000_000

MAX_KEYWORDS = 10
MAX_HEADLINES = 3
MAX_HEADLINE_LENGTH = 30
MAX_DESCRIPTIONS = 2
MAX_DESCRIPTION_LENGTH = 90
MIN_HEADLINES = 3
MIN_DESCRIPTIONS = 2

SEED_KEYWORDS = [
    "therapy",
    "counseling",
    "psychologist",
    "mental health",
    "anxiety treatment",
    "depression help",
]

AUDIENCE_KEYWORDS = [
    (("women", "female"), ["women therapy", "female counseling"]),
    (("men", "male"), ["men therapy", "male counseling"]),
    (("couples",), ["couples therapy", "marriage counseling"]),
    (("family",), ["family therapy", "family counseling"]),
    (("teen", "adolescent"), ["teen therapy", "adolescent counseling"]),
    (("anxiety",), ["anxiety therapy", "anxiety treatment", "panic disorder help"]),
    (("depression",), ["depression therapy", "depression treatment", "mood disorders"]),
    (("trauma",), ["trauma therapy", "PTSD treatment", "trauma counseling"]),
    (("addiction",), ["addiction therapy", "substance abuse counseling"]),
]

METRIC_FIELDS = [
    "metrics.impressions",
    "metrics.clicks",
    "metrics.conversions",
    "metrics.cost_micros",
    "metrics.ctr",
    "metrics.average_cpc",
    "metrics.cost_per_conversion",
]


def daily_budget_micros(total_budget: Decimal) -> int:
    """Monthly budget spread over 30 days, in micros."""
    return int((Decimal(total_budget) * MICROS / 30).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def extract_audience_keywords(target_audience: str) -> list[str]:
    audience = (target_audience or "").lower()
    keywords: list[str] = []
    for triggers, phrases in AUDIENCE_KEYWORDS:
        if any(trigger in audience for trigger in triggers):
            keywords.extend(phrases)
    return keywords


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    unique = []
    for item in items:
        key = item.lower()
        if item and key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


def build_keywords(request: ChannelLaunchRequest) -> list[str]:
    """Broad-match keywords for the ad group.

    The intent variant leads with audience- and location-specific searches
    ("<service> near me", "<service> in <city>") ahead of the generic seeds.
    """
    audience_keywords = extract_audience_keywords(request.target_audience)

    if request.variant == LaunchVariant.INTENT:
        service = (request.service_type or "therapy").lower()
        intent_keywords = [f"{service} near me", f"book {service} appointment"]
        if request.city:
            intent_keywords.insert(1, f"{service} in {request.city.lower()}")
        keywords = intent_keywords + audience_keywords + SEED_KEYWORDS
    else:
        keywords = SEED_KEYWORDS + audience_keywords

    return _dedupe(keywords)[:MAX_KEYWORDS]


def build_ad_text(request: ChannelLaunchRequest) -> tuple[list[str], list[str]]:
    """Headlines and descriptions for a responsive search ad, truncated to Google's limits."""
    headlines = _dedupe([creative.headline[:MAX_HEADLINE_LENGTH].strip() for creative in request.creatives])
    descriptions = _dedupe([creative.description[:MAX_DESCRIPTION_LENGTH].strip() for creative in request.creatives])

    # Responsive search ads need at least three headlines and two descriptions
    service = request.service_type or "Therapy"
    fallback_headlines = [request.name, f"{service} in {request.city}" if request.city else service, "Book a Consultation"]
    for fallback in fallback_headlines:
        if len(headlines) >= MIN_HEADLINES:
            break
        headlines = _dedupe(headlines + [fallback[:MAX_HEADLINE_LENGTH].strip()])

    fallback_descriptions = [
        request.target_audience,
        "Professional, confidential support. Reach out today to schedule your first session.",
    ]
    for fallback in fallback_descriptions:
        if len(descriptions) >= MIN_DESCRIPTIONS:
            break
        descriptions = _dedupe(descriptions + [fallback[:MAX_DESCRIPTION_LENGTH].strip()])

    return headlines[:MAX_HEADLINES], descriptions[:MAX_DESCRIPTIONS]


def _resource_id(resource_name: str) -> str:
    return resource_name.rsplit("/", 1)[-1]


class GoogleAdsAdapter(PlatformAdapter):
    """
    Adapter for the Google Ads API.
    """

    adapter_name = "google"
    channel = Channel.GOOGLE

    def __init__(self, config: GoogleAdsConfig, dry_run: bool = False, timeout: int = 30):
        super().__init__(config, dry_run=dry_run, timeout=timeout)
        self.customer_id = config.customer_id
        self.base_url = f"{GOOGLE_ADS_API_BASE}/{config.api_version}"
        self._access_token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()
        self._dry_run_counter = 0

        if self.dry_run:
            self.log("Running in dry-run mode - Google Ads API calls will be simulated", dry_run_prefix=False)
        elif not self.is_configured():
            logger.warning("Google Ads API credentials not configured")

    def is_configured(self) -> bool:
        return self.config.is_configured

    # HTTP plumbing

    def _get_access_token(self) -> str:
        with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

            response = self._request(
                "POST",
                OAUTH_TOKEN_URL,
                "token refresh",
                data={
                    "grant_type": "refresh_token",
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "refresh_token": self.config.refresh_token,
                },
            )
            token = response.get("access_token")
            if not token:
                raise ChannelError(
                    self.channel.value, "Google Ads token refresh returned no access token", ChannelFailureClass.NOT_CONFIGURED
                )
            self._access_token = token
            self._token_expires_at = time.monotonic() + int(response.get("expires_in", 3600)) - TOKEN_EXPIRY_MARGIN_SECONDS
            return token

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._get_access_token()}",
            "developer-token": self.config.developer_token,
            "Content-Type": "application/json",
        }
        if self.config.login_customer_id:
            headers["login-customer-id"] = self.config.login_customer_id
        return headers

    def _mutate(self, resource: str, operations: list[dict[str, Any]], operation: str) -> list[str]:
        """Run one ``<resource>:mutate`` call and return the affected resource names."""
        url = f"{self.base_url}/customers/{self.customer_id}/{resource}:mutate"
        if self.dry_run:
            self.log(f"Would call: POST {url}")
            self.log(f"  Operations: {json.dumps(operations, default=str)}")
            names = []
            for _ in operations:
                self._dry_run_counter += 1
                names.append(f"customers/{self.customer_id}/{resource}/{self._dry_run_counter}")
            return names

        response = self._request("POST", url, operation, headers=self._headers(), json={"operations": operations})
        return [result["resourceName"] for result in response.get("results", []) if "resourceName" in result]

    def _search(self, query: str, operation: str) -> list[dict[str, Any]]:
        url = f"{self.base_url}/customers/{self.customer_id}/googleAds:search"
        if self.dry_run:
            self.log(f"Would call: POST {url}")
            self.log(f"  Query: {query}")
            return []
        response = self._request("POST", url, operation, headers=self._headers(), json={"query": query})
        return response.get("results", [])

    def _single(self, names: list[str], operation: str) -> str:
        if not names:
            raise ChannelError(
                self.channel.value, f"Google Ads {operation} returned no resource", ChannelFailureClass.UNKNOWN
            )
        return names[0]

    def _campaign_resource(self, external_id: str) -> str:
        return f"customers/{self.customer_id}/campaigns/{external_id}"

    def _check_external_id(self, external_id: str):
        # Interpolated into GAQL, so only numeric ids are accepted
        if not str(external_id).isdigit():
            raise ChannelError(
                self.channel.value,
                f"Invalid Google Ads campaign id: {external_id}",
                ChannelFailureClass.VALIDATION_REJECTED,
            )

    # Campaign creation

    def create_campaign(self, request: ChannelLaunchRequest) -> ChannelCampaign:
        self.ensure_configured()
        self.log(
            f"[bold]Google.create_campaign[/bold] for '{request.name}' "
            f"({request.variant.value}, token {request.idempotency_token})",
            dry_run_prefix=False,
        )

        # Filled in as each resource is created so a failure can report what exists
        resources: dict[str, Any] = {}
        try:
            self._create_search_campaign(request, resources)
        except ChannelError as e:
            partial_id = resources.get("campaign_id")
            if resources:
                e.resource_ids = dict(resources)
            if partial_id:
                logger.error(
                    f"Google Ads campaign {partial_id} left incomplete for campaign {request.campaign_id}; "
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
                "keywords": len(resources["keywords"]),
            },
        )
        logger.info(f"Google Ads campaign created: {external_id} for campaign {request.campaign_id}")
        return ChannelCampaign(external_id=external_id, resource_ids=resources)

    def _create_search_campaign(self, request: ChannelLaunchRequest, resources: dict[str, Any]) -> dict[str, Any]:
        budget_name = self._single(
            self._mutate(
                "campaignBudgets",
                [
                    {
                        "create": {
                            "name": f"{request.name} Budget ({request.idempotency_token})",
                            "amountMicros": str(daily_budget_micros(request.total_budget)),
                            "deliveryMethod": "STANDARD",
                            "explicitlyShared": False,
                        }
                    }
                ],
                "budget create",
            ),
            "budget create",
        )
        resources["budget_id"] = _resource_id(budget_name)

        campaign_name = self._single(
            self._mutate(
                "campaigns",
                [
                    {
                        "create": {
                            "name": request.name,
                            "advertisingChannelType": "SEARCH",
                            "status": "PAUSED",
                            "campaignBudget": budget_name,
                            "networkSettings": {
                                "targetGoogleSearch": True,
                                "targetSearchNetwork": True,
                                "targetContentNetwork": False,
                                "targetPartnerSearchNetwork": False,
                            },
                            "targetCpa": {"targetCpaMicros": str(TARGET_CPA_MICROS)},
                        }
                    }
                ],
                "campaign create",
            ),
            "campaign create",
        )
        resources["campaign_id"] = _resource_id(campaign_name)

        suffix = "High Intent Ad Group" if request.variant == LaunchVariant.INTENT else "Ad Group"
        ad_group_name = self._single(
            self._mutate(
                "adGroups",
                [
                    {
                        "create": {
                            "name": f"{request.name} - {suffix}",
                            "campaign": campaign_name,
                            "status": "ENABLED",
                            "type": "SEARCH_STANDARD",
                            "cpcBidMicros": str(MAX_CPC_MICROS),
                        }
                    }
                ],
                "ad group create",
            ),
            "ad group create",
        )
        resources["ad_group_id"] = _resource_id(ad_group_name)

        keywords = build_keywords(request)
        if keywords:
            self._mutate(
                "adGroupCriteria",
                [
                    {
                        "create": {
                            "adGroup": ad_group_name,
                            "status": "ENABLED",
                            "keyword": {"text": keyword, "matchType": "BROAD"},
                            "cpcBidMicros": str(MAX_CPC_MICROS),
                        }
                    }
                    for keyword in keywords
                ],
                "keyword create",
            )
        resources["keywords"] = keywords

        headlines, descriptions = build_ad_text(request)
        ad_name = self._single(
            self._mutate(
                "adGroupAds",
                [
                    {
                        "create": {
                            "adGroup": ad_group_name,
                            "status": "ENABLED",
                            "ad": {
                                "finalUrls": [request.landing_page_url],
                                "responsiveSearchAd": {
                                    "headlines": [{"text": text} for text in headlines],
                                    "descriptions": [{"text": text} for text in descriptions],
                                },
                            },
                        }
                    }
                ],
                "ad create",
            ),
            "ad create",
        )
        resources["ad_id"] = _resource_id(ad_name)
        return resources

    # Lifecycle

    def pause(self, external_id: str) -> None:
        self.update(external_id, CampaignUpdate(status=CampaignStatus.PAUSED))

    def update(self, external_id: str, fields: CampaignUpdate) -> None:
        self.ensure_configured()
        self._check_external_id(external_id)

        changes: dict[str, Any] = {}
        if fields.name:
            changes["name"] = fields.name
        if fields.status:
            changes["status"] = "ENABLED" if fields.status == CampaignStatus.ACTIVE else "PAUSED"

        if changes:
            self._mutate(
                "campaigns",
                [
                    {
                        "update": {"resourceName": self._campaign_resource(external_id), **changes},
                        "updateMask": ",".join(changes),
                    }
                ],
                "campaign update",
            )
            logger.info(f"Google Ads campaign updated: {external_id} ({', '.join(changes)})")

        if fields.budget is not None:
            self._update_budget(external_id, fields.budget)

        self.audit_logger.log_operation(
            operation="update_campaign",
            external_id=external_id,
            success=True,
            details=fields.model_dump(mode="json", exclude_none=True),
        )

    def _update_budget(self, external_id: str, budget: Decimal):
        rows = self._search(
            f"SELECT campaign.campaign_budget FROM campaign WHERE campaign.id = {external_id}", "budget lookup"
        )
        if not rows:
            if self.dry_run:
                return
            raise ChannelError(
                self.channel.value,
                f"Google Ads campaign {external_id} not found for budget update",
                ChannelFailureClass.VALIDATION_REJECTED,
            )

        budget_name = rows[0]["campaign"]["campaignBudget"]
        self._mutate(
            "campaignBudgets",
            [
                {
                    "update": {"resourceName": budget_name, "amountMicros": str(daily_budget_micros(budget))},
                    "updateMask": "amount_micros",
                }
            ],
            "budget update",
        )
        logger.info(f"Google Ads budget updated for campaign {external_id}")

    def get_metrics(self, external_id: str) -> ChannelMetrics:
        self.ensure_configured()
        self._check_external_id(external_id)

        rows = self._search(
            f"SELECT {', '.join(METRIC_FIELDS)} FROM campaign "
            f"WHERE campaign.id = {external_id} AND segments.date DURING LAST_30_DAYS",
            "metrics read",
        )
        if not rows:
            return ChannelMetrics()

        metrics = rows[0].get("metrics", {})
        return ChannelMetrics(
            impressions=int(metrics.get("impressions", 0)),
            clicks=int(metrics.get("clicks", 0)),
            conversions=float(metrics.get("conversions", 0)),
            cost=float(metrics.get("costMicros", 0)) / 1_000_000,
            ctr=float(metrics.get("ctr", 0)),
            cpc=float(metrics.get("averageCpc", 0)) / 1_000_000,
            cpl=float(metrics.get("costPerConversion", 0)) / 1_000_000,
        )

    def check_connection(self) -> dict[str, Any]:
        if not self.is_configured():
            return {"success": False, "error": "Google Ads API not configured"}
        if self.dry_run:
            return {"success": True, "dry_run": True, "customer_id": self.customer_id}

        try:
            response = self._request(
                "GET", f"{self.base_url}/customers:listAccessibleCustomers", "connection check", headers=self._headers()
            )
        except ChannelError as e:
            return {"success": False, "error": str(e)}

        accessible = response.get("resourceNames", [])
        self.audit_logger.log_success(f"Connected to Google Ads customer {self.customer_id}")
        return {
            "success": True,
            "customer_id": self.customer_id,
            "customer_accessible": f"customers/{self.customer_id}" in accessible,
        }
