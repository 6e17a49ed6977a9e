"""Declared project configuration.

These models describe the desired state of each app's store listing. They are
validated once when the project file is loaded and are treated as read-only
for the rest of the run. Field aliases follow the camelCase keys used in the
YAML project file.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DeclaredModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class Platform(StrEnum):
    IOS = "iOS"
    MACOS = "macOS"
    TVOS = "tvOS"

    @property
    def api_value(self) -> str:
        return _PLATFORM_API_VALUES[self]


_PLATFORM_API_VALUES = {
    Platform.IOS: "IOS",
    Platform.MACOS: "MAC_OS",
    Platform.TVOS: "TV_OS",
}


class ReleaseType(StrEnum):
    MANUAL = "manual"
    AFTER_APPROVAL = "afterApproval"
    SCHEDULED = "scheduled"

    @property
    def api_value(self) -> str:
        return _RELEASE_TYPE_API_VALUES[self]


_RELEASE_TYPE_API_VALUES = {
    ReleaseType.MANUAL: "MANUAL",
    ReleaseType.AFTER_APPROVAL: "AFTER_APPROVAL",
    ReleaseType.SCHEDULED: "SCHEDULED",
}


class ContentIntensity(StrEnum):
    NONE = "none"
    INFREQUENT_OR_MILD = "infrequentOrMild"
    FREQUENT_OR_INTENSE = "frequentOrIntense"

    @property
    def api_value(self) -> str:
        return _CONTENT_INTENSITY_API_VALUES[self]


_CONTENT_INTENSITY_API_VALUES = {
    ContentIntensity.NONE: "NONE",
    ContentIntensity.INFREQUENT_OR_MILD: "INFREQUENT_OR_MILD",
    ContentIntensity.FREQUENT_OR_INTENSE: "FREQUENT_OR_INTENSE",
}


class KidsAgeBand(StrEnum):
    FIVE_AND_UNDER = "5 and under"
    SIX_TO_EIGHT = "6-8"
    NINE_TO_ELEVEN = "9-11"

    @property
    def api_value(self) -> str:
        return _KIDS_AGE_BAND_API_VALUES[self]


_KIDS_AGE_BAND_API_VALUES = {
    KidsAgeBand.FIVE_AND_UNDER: "FIVE_AND_UNDER",
    KidsAgeBand.SIX_TO_EIGHT: "SIX_TO_EIGHT",
    KidsAgeBand.NINE_TO_ELEVEN: "NINE_TO_ELEVEN",
}


class PreviewType(StrEnum):
    APPLE_TV = "appleTV"
    DESKTOP = "desktop"
    IPAD_105 = "ipad105"
    IPAD_97 = "ipad97"
    IPAD_PRO_129 = "ipadPro129"
    IPAD_PRO_3GEN_11 = "ipadPro3Gen11"
    IPAD_PRO_3GEN_129 = "ipadPro3Gen129"
    IPHONE_35 = "iphone35"
    IPHONE_40 = "iphone40"
    IPHONE_47 = "iphone47"
    IPHONE_55 = "iphone55"
    IPHONE_58 = "iphone58"
    IPHONE_65 = "iphone65"
    WATCH_SERIES_3 = "watchSeries3"
    WATCH_SERIES_4 = "watchSeries4"

    @property
    def api_value(self) -> str:
        return self.name

    @classmethod
    def from_api_value(cls, value: str) -> PreviewType | None:
        return cls.__members__.get(value)


class ScreenshotDisplayType(StrEnum):
    APP_APPLE_TV = "appleTV"
    APP_DESKTOP = "desktop"
    APP_IPAD_105 = "ipad105"
    APP_IPAD_97 = "ipad97"
    APP_IPAD_PRO_129 = "ipadPro129"
    APP_IPAD_PRO_3GEN_11 = "ipadPro3Gen11"
    APP_IPAD_PRO_3GEN_129 = "ipadPro3Gen129"
    APP_IPHONE_35 = "iphone35"
    APP_IPHONE_40 = "iphone40"
    APP_IPHONE_47 = "iphone47"
    APP_IPHONE_55 = "iphone55"
    APP_IPHONE_58 = "iphone58"
    APP_IPHONE_65 = "iphone65"
    APP_WATCH_SERIES_3 = "watchSeries3"
    APP_WATCH_SERIES_4 = "watchSeries4"
    IMESSAGE_APP_IPAD_105 = "ipad105imessage"
    IMESSAGE_APP_IPAD_97 = "ipad97imessage"
    IMESSAGE_APP_IPAD_PRO_129 = "ipadPro129imessage"
    IMESSAGE_APP_IPAD_PRO_3GEN_11 = "ipadPro3Gen11imessage"
    IMESSAGE_APP_IPAD_PRO_3GEN_129 = "ipadPro3Gen129imessage"
    IMESSAGE_APP_IPHONE_40 = "iphone40imessage"
    IMESSAGE_APP_IPHONE_47 = "iphone47imessage"
    IMESSAGE_APP_IPHONE_55 = "iphone55imessage"
    IMESSAGE_APP_IPHONE_58 = "iphone58imessage"
    IMESSAGE_APP_IPHONE_65 = "iphone65imessage"

    @property
    def api_value(self) -> str:
        return self.name

    @classmethod
    def from_api_value(cls, value: str) -> ScreenshotDisplayType | None:
        return cls.__members__.get(value)


class File(DeclaredModel):
    path: str


class Preview(File):
    mime_type: str | None = Field(default=None, alias="mimeType")
    preview_frame_time_code: str | None = None


class BetaTester(DeclaredModel):
    email: str = ""
    first_name: str | None = None
    last_name: str | None = None


def _require_unique(values: list[str], what: str) -> None:
    seen: set[str] = set()
    for value in values:
        if not value:
            continue
        if value in seen:
            raise ValueError(f"duplicate {what}: {value}")
        seen.add(value)


class BetaGroup(DeclaredModel):
    name: str = Field(alias="group")
    public_link_enabled: bool = False
    public_link_limit_enabled: bool = False
    feedback_enabled: bool = False
    public_link_limit: int | None = None
    testers: list[BetaTester] = Field(default_factory=list[BetaTester])

    @field_validator("testers")
    @classmethod
    def _unique_testers(cls, value: list[BetaTester]) -> list[BetaTester]:
        _require_unique([tester.email for tester in value], "beta tester email")
        return value


class TestflightLocalization(DeclaredModel):
    description: str = ""
    feedback_email: str | None = None
    marketing_url: str | None = Field(default=None, alias="marketingURL")
    privacy_policy_url: str | None = Field(default=None, alias="privacyPolicyURL")
    tvos_privacy_policy: str | None = Field(default=None, alias="tvOSPrivacyPolicy")
    whats_new: str | None = None


class ContactPerson(DeclaredModel):
    email: str
    first_name: str
    last_name: str
    phone: str


class DemoAccount(DeclaredModel):
    required: bool = Field(default=False, alias="isRequired")
    name: str | None = None
    password: str | None = None


class ReviewDetails(DeclaredModel):
    contact: ContactPerson | None = None
    demo_account: DemoAccount | None = None
    notes: str | None = None
    attachments: list[File] = Field(default_factory=list[File])


class TestflightForApp(DeclaredModel):
    enable_auto_notify: bool = False
    license_agreement: str = ""
    localizations: dict[str, TestflightLocalization] = Field(
        default_factory=dict[str, TestflightLocalization]
    )
    beta_groups: list[BetaGroup] = Field(default_factory=list[BetaGroup])
    beta_testers: list[BetaTester] = Field(default_factory=list[BetaTester])
    review_details: ReviewDetails | None = None

    @field_validator("beta_groups")
    @classmethod
    def _unique_groups(cls, value: list[BetaGroup]) -> list[BetaGroup]:
        _require_unique([group.name for group in value], "beta group name")
        return value

    @field_validator("beta_testers")
    @classmethod
    def _unique_testers(cls, value: list[BetaTester]) -> list[BetaTester]:
        _require_unique([tester.email for tester in value], "beta tester email")
        return value


class AppLocalization(DeclaredModel):
    name: str
    subtitle: str | None = None
    privacy_policy_text: str | None = None
    privacy_policy_url: str | None = Field(default=None, alias="privacyPolicyURL")


class VersionLocalization(DeclaredModel):
    description: str = ""
    keywords: str | None = None
    marketing_url: str | None = Field(default=None, alias="marketingURL")
    promotional_text: str | None = None
    support_url: str | None = Field(default=None, alias="supportURL")
    whats_new: str | None = None
    preview_sets: dict[PreviewType, list[Preview]] = Field(
        default_factory=dict[PreviewType, list[Preview]]
    )
    screenshot_sets: dict[ScreenshotDisplayType, list[File]] = Field(
        default_factory=dict[ScreenshotDisplayType, list[File]]
    )


class IDFADeclaration(DeclaredModel):
    attributes_action_with_previous_ad: bool = False
    attributes_app_installation_to_previous_ad: bool = False
    honors_limited_ad_tracking: bool = False
    serves_ads: bool = False


class Version(DeclaredModel):
    platform: Platform | None = None
    localizations: dict[str, VersionLocalization] = Field(
        default_factory=dict[str, VersionLocalization]
    )
    copyright: str | None = None
    earliest_release_date: datetime | None = None
    release_type: ReleaseType | None = None
    phased_release_enabled: bool = Field(default=False, alias="enablePhasedRelease")
    idfa_declaration: IDFADeclaration | None = None
    routing_coverage: File | None = None
    review_details: ReviewDetails | None = None


class Categories(DeclaredModel):
    primary: str = ""
    primary_subcategories: tuple[str, str] = ("", "")
    secondary: str = ""
    secondary_subcategories: tuple[str, str] = ("", "")


class AgeRatingDeclaration(DeclaredModel):
    gambling_and_contests: bool | None = None
    unrestricted_web_access: bool | None = None
    kids_age_band: KidsAgeBand | None = None
    alcohol_tobacco_or_drug_use_or_references: ContentIntensity | None = None
    medical_or_treatment_information: ContentIntensity | None = None
    profanity_or_crude_humor: ContentIntensity | None = None
    sexual_content_or_nudity: ContentIntensity | None = None
    gambling_simulated: ContentIntensity | None = None
    horror_or_fear_themes: ContentIntensity | None = None
    mature_or_suggestive_themes: ContentIntensity | None = None
    sexual_content_graphic_and_nudity: ContentIntensity | None = None
    violence_cartoon_or_fantasy: ContentIntensity | None = None
    violence_realistic: ContentIntensity | None = None
    violence_realistic_prolonged_graphic_or_sadistic: ContentIntensity | None = None


class PriceSchedule(DeclaredModel):
    tier: str
    start_date: datetime | None = None
    end_date: datetime | None = None


class Availability(DeclaredModel):
    available_in_new_territories: bool | None = None
    pricing: list[PriceSchedule] = Field(default_factory=list[PriceSchedule], alias="priceTiers")
    territories: list[str] = Field(default_factory=list[str])


class App(DeclaredModel):
    bundle_id: str = Field(alias="id")
    primary_locale: str | None = None
    uses_third_party_content: bool | None = None
    availability: Availability | None = None
    categories: Categories | None = None
    age_rating_declaration: AgeRatingDeclaration | None = Field(default=None, alias="ageRatings")
    localizations: dict[str, AppLocalization] = Field(default_factory=dict[str, AppLocalization])
    versions: Version = Field(default_factory=Version)
    testflight: TestflightForApp = Field(default_factory=TestflightForApp)


class Project(DeclaredModel):
    name: str = ""
    apps: dict[str, App] = Field(default_factory=dict[str, App])

    def apps_matching(self, keys: list[str], *, include_all: bool = False) -> list[str]:
        """Return the app names selected by ``keys``.

        Every app is selected when ``include_all`` is set or when the project
        declares exactly one app. Unknown keys are dropped.
        """

        if include_all or len(self.apps) == 1:
            return list(self.apps)
        return [key for key in keys if key in self.apps]

    def with_beta_overrides(
        self,
        *,
        groups: list[str] | None = None,
        testers: list[str] | None = None,
    ) -> Project:
        """Return a copy whose apps release to the given groups/testers instead."""

        if not groups and not testers:
            return self
        apps: dict[str, App] = {}
        for name, app in self.apps.items():
            update: dict[str, object] = {}
            if groups:
                update["beta_groups"] = [BetaGroup(name=group) for group in groups]
            if testers:
                update["beta_testers"] = [BetaTester(email=email) for email in testers]
            apps[name] = app.model_copy(
                update={"testflight": app.testflight.model_copy(update=update)}
            )
        return self.model_copy(update={"apps": apps})
