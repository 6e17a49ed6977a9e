from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from storesync.domain.errors import AppInfoNotFoundError
from storesync.domain.project import AgeRatingDeclaration, Categories, PriceSchedule
from storesync.domain.publishing.store import (
    age_rating_attributes,
    categories_relationships,
    content_rights_declaration,
    price_schedules,
    release_to_app_store,
    update_version_localizations,
    version_localization_attributes,
)
from tests.helpers.remote import (
    FakeRemoteClient,
    make_context,
    make_project,
    make_session,
    resource,
)

if TYPE_CHECKING:
    from pathlib import Path

    from storesync.domain.context import Context


def _store_client(*, versions: tuple[str, ...] = ("1.0.0", "1.1.0")) -> FakeRemoteClient:
    return FakeRemoteClient(
        collections={
            "apps": [resource("apps", "app-1", bundleId="com.example.app")],
            "builds": [resource("builds", "build-1", version="42", processingState="VALID")],
            "apps/app-1/appStoreVersions": [
                resource("appStoreVersions", f"ver-{index}", versionString=version)
                for index, version in enumerate(versions)
            ],
            "apps/app-1/appInfos": [
                resource("appInfos", "info-live", appStoreState="READY_FOR_SALE"),
                resource("appInfos", "info-1", appStoreState="PREPARE_FOR_SUBMISSION"),
            ],
            "territories": [resource("territories", "USA"), resource("territories", "DEU")],
        }
    )


def _release(
    client: FakeRemoteClient, app: dict[str, Any], directory: Path | None = None, **overrides: Any
) -> tuple[bool, Context]:
    project = make_project({"example": {"id": "com.example.app", **app}})
    ctx = make_context(project, current_directory=directory, **overrides)
    session = make_session(client, ctx)
    return asyncio.run(release_to_app_store(session, ctx.app("example"))), ctx


def test_content_rights_declaration() -> None:
    assert content_rights_declaration(None) is None
    assert content_rights_declaration(True) == "USES_THIRD_PARTY_CONTENT"
    assert content_rights_declaration(False) == "DOES_NOT_USE_THIRD_PARTY_CONTENT"


def test_price_schedules_use_inline_placeholders() -> None:
    ids, included = price_schedules(
        "app-1",
        [
            PriceSchedule(tier="0"),
            PriceSchedule(tier="3", start_date=datetime(2024, 6, 1, tzinfo=UTC)),
        ],
    )

    assert ids == ["${price0}", "${price1}"]
    assert included[0]["attributes"] == {}
    assert included[1]["attributes"] == {"startDate": "2024-06-01"}
    assert included[1]["relationships"]["priceTier"] == {
        "data": {"type": "appPriceTiers", "id": "3"}
    }


def test_categories_relationships_skip_blank_entries() -> None:
    relationships = categories_relationships(
        Categories(primary="GAMES", primary_subcategories=("GAMES_PUZZLE", ""))
    )

    assert relationships == {
        "primaryCategory": ("appCategories", "GAMES"),
        "primarySubcategoryOne": ("appCategories", "GAMES_PUZZLE"),
    }


def test_age_rating_attributes_use_api_values() -> None:
    declaration = AgeRatingDeclaration.model_validate(
        {"gamblingAndContests": False, "violenceRealistic": "frequentOrIntense"}
    )

    assert age_rating_attributes(declaration) == {
        "gamblingAndContests": False,
        "violenceRealistic": "FREQUENT_OR_INTENSE",
    }


def test_whats_new_is_omitted_on_initial_release() -> None:
    project = make_project(
        {
            "example": {
                "id": "com.example.app",
                "versions": {"localizations": {"en-US": {"description": "D", "whatsNew": "N"}}},
            }
        }
    )
    localization = project.apps["example"].versions.localizations["en-US"]

    assert "whatsNew" not in version_localization_attributes(localization, initial_release=True)
    assert version_localization_attributes(localization, initial_release=False)["whatsNew"] == "N"


def test_version_localizations_nest_their_screenshot_sets(asset_dir: Path) -> None:
    client = FakeRemoteClient(
        collections={
            "appStoreVersions/ver-1/appStoreVersionLocalizations": [
                resource("appStoreVersionLocalizations", "loc-en", locale="en-US")
            ]
        }
    )
    project = make_project(
        {
            "example": {
                "id": "com.example.app",
                "versions": {
                    "localizations": {
                        "en-US": {
                            "description": "English",
                            "screenshotSets": {"iphone65": [{"path": "shot-1.png"}]},
                        },
                        "fr-FR": {"description": "Français"},
                    }
                },
            }
        }
    )
    ctx = make_context(project, current_directory=asset_dir, max_processes=2)
    session = make_session(client, ctx)

    plan = asyncio.run(
        update_version_localizations(
            session, "ver-1", project.apps["example"].versions.localizations
        )
    )

    assert plan.updated == ["en-US"]
    assert plan.created == ["fr-FR"]
    (created_set,) = client.made("create", "appScreenshotSets")
    assert created_set.relationships == {
        "appStoreVersionLocalization": ("appStoreVersionLocalizations", "loc-en")
    }
    assert len(client.made("update", "appScreenshots")) == 1


def test_release_creates_version_updates_metadata_and_submits(asset_dir: Path) -> None:
    client = _store_client()
    client.singles["appStoreVersions/appStoreVersions-1/ageRatingDeclaration"] = resource(
        "ageRatingDeclarations", "age-1"
    )

    submitted, ctx = _release(
        client,
        {
            "primaryLocale": "en-US",
            "usesThirdPartyContent": False,
            "availability": {
                "availableInNewTerritories": True,
                "territories": ["USA", "ATA"],
                "priceTiers": [{"tier": "1"}],
            },
            "categories": {"primary": "GAMES"},
            "ageRatings": {"gamblingAndContests": False},
            "localizations": {"en-US": {"name": "Example"}},
            "versions": {
                "platform": "iOS",
                "releaseType": "manual",
                "enablePhasedRelease": True,
                "idfaDeclaration": {"servesAds": True},
                "routingCoverage": {"path": "coverage.geojson"},
                "reviewDetails": {
                    "notes": "Log in with the demo account",
                    "attachments": [{"path": "notes.pdf"}],
                },
            },
        },
        asset_dir,
    )

    assert submitted
    assert not ctx.version_is_initial_release
    (version,) = client.made("create", "appStoreVersions")
    assert version.attributes["platform"] == "IOS"
    assert version.attributes["versionString"] == "1.2.3"
    assert version.attributes["releaseType"] == "MANUAL"
    assert version.attributes["usesIdfa"] is True
    assert version.relationships == {"app": ("apps", "app-1"), "build": ("builds", "build-1")}

    (app_update,) = client.made("update", "apps")
    assert app_update.attributes == {
        "contentRightsDeclaration": "DOES_NOT_USE_THIRD_PARTY_CONTENT",
        "primaryLocale": "en-US",
        "availableInNewTerritories": True,
    }
    assert app_update.relationships["availableTerritories"] == ("territories", ["USA"])
    assert app_update.relationships["prices"] == ("appPrices", ["${price0}"])
    assert app_update.included[0]["type"] == "appPrices"

    (categories,) = client.made("update", "appInfos")
    assert categories.id == "info-1"
    (age_rating,) = client.made("update", "ageRatingDeclarations")
    assert age_rating.attributes == {"gamblingAndContests": False}
    (app_localization,) = client.made("create", "appInfoLocalizations")
    assert app_localization.relationships == {"appInfo": ("appInfos", "info-1")}
    (idfa,) = client.made("create", "idfaDeclarations")
    assert idfa.attributes["servesAds"] is True
    assert len(client.made("create", "routingAppCoverages")) == 1
    (review,) = client.made("create", "appStoreReviewDetails")
    assert review.attributes == {"notes": "Log in with the demo account"}
    assert len(client.made("create", "appStoreReviewAttachments")) == 1

    (phased,) = client.made("create", "appStoreVersionPhasedReleases")
    assert phased.attributes == {"phasedReleaseState": "ACTIVE"}
    (submission,) = client.made("create", "appStoreVersionSubmissions")
    assert client.calls[-1] is submission


def test_existing_version_is_updated_with_the_build() -> None:
    client = _store_client(versions=("1.0.0", "1.2.3"))

    _release(client, {"versions": {"platform": "iOS"}}, skip_update_metadata=True)

    assert client.made("create", "appStoreVersions") == []
    (version,) = client.made("update", "appStoreVersions")
    assert version.id == "ver-1"
    assert version.relationships == {"build": ("builds", "build-1")}
    assert (
        "apps/app-1/appStoreVersions",
        {"filter[versionString]": "1.2.3", "filter[platform]": "IOS"},
    ) in client.fetches


def test_initial_release_skips_phased_release() -> None:
    client = _store_client(versions=())

    submitted, ctx = _release(
        client,
        {"versions": {"platform": "iOS", "enablePhasedRelease": True}},
        skip_update_metadata=True,
    )

    assert submitted
    assert ctx.version_is_initial_release
    assert client.made("create", "appStoreVersionPhasedReleases") == []


def test_skip_pricing_leaves_availability_alone() -> None:
    client = _store_client()

    _release(
        client,
        {
            "availability": {"territories": ["USA"], "priceTiers": [{"tier": "1"}]},
            "versions": {"platform": "iOS"},
        },
        skip_update_pricing=True,
        skip_submit=True,
    )

    (app_update,) = client.made("update", "apps")
    assert app_update.relationships == {}
    assert app_update.included == []
    assert all(path != "territories" for path, _ in client.fetches)
    assert client.made("create", "appStoreVersionSubmissions") == []


def test_missing_editable_app_info_fails() -> None:
    client = _store_client()
    client.collections["apps/app-1/appInfos"] = []

    with pytest.raises(AppInfoNotFoundError):
        _release(client, {"versions": {"platform": "iOS"}})
