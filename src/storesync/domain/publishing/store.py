"""Publish an App Store version for review."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any

from storesync.domain.reconcile import SINGLETON, Reconciler, singleton_key

from .apps import find_app, find_build, find_editable_app_info, release_is_initial
from .assets import schedule_preview_sets, schedule_screenshot_sets, upload_review_attachments
from .assets import upload_routing_coverage as upload_routing_coverage_asset
from .session import PublishSession, attr_key, compact
from .testflight import review_detail_attributes

if TYPE_CHECKING:
    from storesync.domain.parallel import TaskGroup
    from storesync.domain.ports.remote import RemoteResource
    from storesync.domain.project import (
        AgeRatingDeclaration,
        App,
        AppLocalization,
        Availability,
        Categories,
        IDFADeclaration,
        PriceSchedule,
        ReviewDetails,
        Version,
        VersionLocalization,
    )
    from storesync.domain.reconcile import ReconcilePlan

TERRITORIES_LIMIT = 200
PHASED_RELEASE_ACTIVE = "ACTIVE"


def content_rights_declaration(uses_third_party_content: bool | None) -> str | None:
    if uses_third_party_content is None:
        return None
    if uses_third_party_content:
        return "USES_THIRD_PARTY_CONTENT"
    return "DOES_NOT_USE_THIRD_PARTY_CONTENT"


def price_schedules(
    app_id: str, schedules: list[PriceSchedule]
) -> tuple[list[str], list[dict[str, Any]]]:
    """Return placeholder ids and inline ``appPrices`` resources for ``schedules``."""

    ids: list[str] = []
    included: list[dict[str, Any]] = []
    for index, schedule in enumerate(schedules):
        price_id = f"${{price{index}}}"
        ids.append(price_id)
        attributes = compact(
            {"startDate": schedule.start_date.date().isoformat() if schedule.start_date else None}
        )
        included.append(
            {
                "type": "appPrices",
                "id": price_id,
                "attributes": attributes,
                "relationships": {
                    "app": {"data": {"type": "apps", "id": app_id}},
                    "priceTier": {"data": {"type": "appPriceTiers", "id": schedule.tier}},
                },
            }
        )
    return ids, included


def categories_relationships(categories: Categories) -> dict[str, tuple[str, str]]:
    relationships: dict[str, tuple[str, str]] = {}
    if categories.primary:
        relationships["primaryCategory"] = ("appCategories", categories.primary)
        one, two = categories.primary_subcategories
        if one:
            relationships["primarySubcategoryOne"] = ("appCategories", one)
        if two:
            relationships["primarySubcategoryTwo"] = ("appCategories", two)
    if categories.secondary:
        relationships["secondaryCategory"] = ("appCategories", categories.secondary)
        one, two = categories.secondary_subcategories
        if one:
            relationships["secondarySubcategoryOne"] = ("appCategories", one)
        if two:
            relationships["secondarySubcategoryTwo"] = ("appCategories", two)
    return relationships


def age_rating_attributes(declaration: AgeRatingDeclaration) -> dict[str, Any]:
    declared = declaration.model_dump(by_alias=True, exclude_none=True)
    return {key: getattr(value, "api_value", value) for key, value in declared.items()}


def version_localization_attributes(
    localization: VersionLocalization, *, initial_release: bool
) -> dict[str, Any]:
    """Attributes for an App Store version localization.

    ``whatsNew`` is rejected by the API for an app that has never been
    released, so it is left out on the initial release.
    """

    attributes = {
        "description": localization.description or None,
        "keywords": localization.keywords or None,
        "marketingUrl": localization.marketing_url or None,
        "promotionalText": localization.promotional_text or None,
        "supportUrl": localization.support_url or None,
    }
    if not initial_release:
        attributes["whatsNew"] = localization.whats_new or None
    return compact(attributes)


def app_localization_attributes(localization: AppLocalization) -> dict[str, Any]:
    return compact(
        {
            "name": localization.name,
            "subtitle": localization.subtitle,
            "privacyPolicyText": localization.privacy_policy_text,
            "privacyPolicyUrl": localization.privacy_policy_url,
        }
    )


def idfa_attributes(declaration: IDFADeclaration) -> dict[str, Any]:
    return {
        "attributesActionWithPreviousAd": declaration.attributes_action_with_previous_ad,
        "attributesAppInstallationToPreviousAd": (
            declaration.attributes_app_installation_to_previous_ad
        ),
        "honorsLimitedAdTracking": declaration.honors_limited_ad_tracking,
        "servesAds": declaration.serves_ads,
    }


async def available_territory_ids(session: PublishSession, territories: list[str]) -> list[str]:
    """Return the declared territory ids the platform knows about."""

    if not territories:
        return []
    known = {
        territory.id
        for territory in await session.client.list(
            "territories", {"limit": str(TERRITORIES_LIMIT)}
        )
    }
    unknown = [territory for territory in territories if territory not in known]
    if unknown:
        session.log.warning("Ignoring unknown territories: %s", ", ".join(unknown))
    return [territory for territory in territories if territory in known]


async def update_app(session: PublishSession, app_id: str, app: App) -> None:
    """Update content rights, primary locale and, unless skipped, availability and pricing."""

    ctx = session.ctx
    attributes: dict[str, Any] = {
        "contentRightsDeclaration": content_rights_declaration(app.uses_third_party_content),
        "primaryLocale": app.primary_locale or None,
    }
    relationships: dict[str, Any] = {}
    included: list[dict[str, Any]] | None = None
    availability: Availability | None = app.availability
    if not ctx.skip_update_pricing and availability is not None:
        attributes["availableInNewTerritories"] = availability.available_in_new_territories
        territory_ids = await available_territory_ids(session, availability.territories)
        if territory_ids:
            relationships["availableTerritories"] = ("territories", territory_ids)
        if availability.pricing:
            price_ids, included = price_schedules(app_id, availability.pricing)
            relationships["prices"] = ("appPrices", price_ids)
    await session.client.update(
        "apps", app_id, compact(attributes), relationships or None, included
    )


async def update_categories(
    session: PublishSession, app_info_id: str, categories: Categories
) -> None:
    relationships = categories_relationships(categories)
    if relationships:
        await session.client.update("appInfos", app_info_id, None, relationships)


async def update_age_rating_declaration(
    session: PublishSession, version_id: str, declaration: AgeRatingDeclaration
) -> ReconcilePlan:
    async def update(remote: RemoteResource, declared: AgeRatingDeclaration) -> None:
        await session.client.update(
            "ageRatingDeclarations", remote.id, age_rating_attributes(declared)
        )

    async def create(_key: str, _declared: AgeRatingDeclaration) -> None:
        session.log.warning("No age rating declaration exists yet; nothing to update")

    return await Reconciler(
        kind="age rating declaration",
        fetch=partial(session.fetch_one, f"appStoreVersions/{version_id}/ageRatingDeclaration"),
        key=singleton_key,
        update=update,
        create=create,
        log=session.log,
    ).run({SINGLETON: declaration})


async def update_app_details(
    session: PublishSession,
    app_id: str,
    app_info_id: str,
    version_id: str,
    app: App,
) -> None:
    """Update the app, its categories and its age rating concurrently."""

    group = session.group()
    await group.submit(partial(update_app, session, app_id, app))
    if app.categories is not None:
        await group.submit(partial(update_categories, session, app_info_id, app.categories))
    if app.age_rating_declaration is not None:
        declaration = app.age_rating_declaration

        async def update_age_rating() -> None:
            await update_age_rating_declaration(session, version_id, declaration)

        await group.submit(update_age_rating)
    await group.wait()


async def update_app_localizations(
    session: PublishSession,
    app_info_id: str,
    localizations: dict[str, AppLocalization],
) -> ReconcilePlan:
    client = session.client

    async def update(remote: RemoteResource, localization: AppLocalization) -> None:
        await client.update(
            "appInfoLocalizations", remote.id, app_localization_attributes(localization)
        )

    async def create(locale: str, localization: AppLocalization) -> None:
        await client.create(
            "appInfoLocalizations",
            {"locale": locale, **app_localization_attributes(localization)},
            {"appInfo": ("appInfos", app_info_id)},
        )

    return await Reconciler(
        kind="app localization",
        fetch=partial(client.list, f"appInfos/{app_info_id}/appInfoLocalizations"),
        key=attr_key("locale"),
        update=update,
        create=create,
        log=session.log,
    ).run(localizations, session.concurrency)


def version_attributes(ctx_version: str, version: Version) -> dict[str, Any]:
    return compact(
        {
            "versionString": ctx_version,
            "copyright": version.copyright,
            "earliestReleaseDate": (
                version.earliest_release_date.isoformat()
                if version.earliest_release_date
                else None
            ),
            "releaseType": version.release_type.api_value if version.release_type else None,
            "usesIdfa": version.idfa_declaration is not None,
        }
    )


async def create_version_if_needed(
    session: PublishSession,
    app_id: str,
    build_id: str,
    version: Version,
) -> RemoteResource:
    """Create or update the App Store version for the release, attached to the build."""

    ctx = session.ctx
    client = session.client
    if version.platform is None:
        raise ValueError("No platform configured for the App Store version")
    platform = version.platform.api_value
    existing = await client.list(
        f"apps/{app_id}/appStoreVersions",
        {"filter[versionString]": ctx.version, "filter[platform]": platform},
    )
    attributes = version_attributes(ctx.version, version)
    if existing:
        return await client.update(
            "appStoreVersions",
            existing[0].id,
            attributes,
            {"build": ("builds", build_id)},
        )
    return await client.create(
        "appStoreVersions",
        {"platform": platform, **attributes},
        {"app": ("apps", app_id), "build": ("builds", build_id)},
    )


async def schedule_version_localizations(
    session: PublishSession,
    group: TaskGroup,
    version_id: str,
    localizations: dict[str, VersionLocalization],
) -> ReconcilePlan:
    """Reconcile version localizations, then their preview and screenshot sets."""

    client = session.client
    initial_release = session.ctx.version_is_initial_release

    async def schedule_media(localization_id: str, declared: VersionLocalization) -> None:
        await schedule_preview_sets(session, group, localization_id, declared.preview_sets)
        await schedule_screenshot_sets(session, group, localization_id, declared.screenshot_sets)

    async def update(remote: RemoteResource, declared: VersionLocalization) -> None:
        updated = await client.update(
            "appStoreVersionLocalizations",
            remote.id,
            version_localization_attributes(declared, initial_release=initial_release),
        )
        await schedule_media(updated.id, declared)

    async def create(locale: str, declared: VersionLocalization) -> None:
        created = await client.create(
            "appStoreVersionLocalizations",
            {
                "locale": locale,
                **version_localization_attributes(declared, initial_release=initial_release),
            },
            {"appStoreVersion": ("appStoreVersions", version_id)},
        )
        await schedule_media(created.id, declared)

    reconciler = Reconciler(
        kind="version localization",
        fetch=partial(client.list, f"appStoreVersions/{version_id}/appStoreVersionLocalizations"),
        key=attr_key("locale"),
        update=update,
        create=create,
        log=session.log,
    )
    return await reconciler.schedule(localizations, group)


async def update_version_localizations(
    session: PublishSession,
    version_id: str,
    localizations: dict[str, VersionLocalization],
) -> ReconcilePlan:
    group = session.group()
    plan = await schedule_version_localizations(session, group, version_id, localizations)
    await group.wait()
    return plan


async def update_idfa_declaration(
    session: PublishSession, version_id: str, declaration: IDFADeclaration
) -> ReconcilePlan:
    client = session.client

    async def update(remote: RemoteResource, declared: IDFADeclaration) -> None:
        await client.update("idfaDeclarations", remote.id, idfa_attributes(declared))

    async def create(_key: str, declared: IDFADeclaration) -> None:
        await client.create(
            "idfaDeclarations",
            idfa_attributes(declared),
            {"appStoreVersion": ("appStoreVersions", version_id)},
        )

    return await Reconciler(
        kind="IDFA declaration",
        fetch=partial(session.fetch_one, f"appStoreVersions/{version_id}/idfaDeclaration"),
        key=singleton_key,
        update=update,
        create=create,
        log=session.log,
    ).run({SINGLETON: declaration})


async def update_review_details(
    session: PublishSession, version_id: str, details: ReviewDetails
) -> ReconcilePlan:
    """Update or create the App Store review details, then upload their attachments."""

    client = session.client

    async def update(remote: RemoteResource, declared: ReviewDetails) -> None:
        await client.update("appStoreReviewDetails", remote.id, review_detail_attributes(declared))
        await upload_review_attachments(session, remote.id, declared.attachments)

    async def create(_key: str, declared: ReviewDetails) -> None:
        created = await client.create(
            "appStoreReviewDetails",
            review_detail_attributes(declared),
            {"appStoreVersion": ("appStoreVersions", version_id)},
        )
        await upload_review_attachments(session, created.id, declared.attachments)

    return await Reconciler(
        kind="review details",
        fetch=partial(session.fetch_one, f"appStoreVersions/{version_id}/appStoreReviewDetail"),
        key=singleton_key,
        update=update,
        create=create,
        log=session.log,
    ).run({SINGLETON: details})


async def enable_phased_release(session: PublishSession, version_id: str) -> ReconcilePlan:
    client = session.client
    attributes = {"phasedReleaseState": PHASED_RELEASE_ACTIVE}

    async def update(remote: RemoteResource, _declared: object) -> None:
        await client.update("appStoreVersionPhasedReleases", remote.id, attributes)

    async def create(_key: str, _declared: object) -> None:
        await client.create(
            "appStoreVersionPhasedReleases",
            attributes,
            {"appStoreVersion": ("appStoreVersions", version_id)},
        )

    return await Reconciler(
        kind="phased release",
        fetch=partial(
            session.fetch_one, f"appStoreVersions/{version_id}/appStoreVersionPhasedRelease"
        ),
        key=singleton_key,
        update=update,
        create=create,
        log=session.log,
    ).run({SINGLETON: PHASED_RELEASE_ACTIVE})


async def submit_app(session: PublishSession, version_id: str) -> None:
    await session.client.create(
        "appStoreVersionSubmissions",
        None,
        {"appStoreVersion": ("appStoreVersions", version_id)},
    )


async def update_version_details(
    session: PublishSession, app_id: str, version_id: str, app: App
) -> None:
    log = session.log
    app_info = await find_editable_app_info(session.client, app_id)
    log.info("Updating app details")
    await update_app_details(session, app_id, app_info.id, version_id, app)
    log.info("Updating %d app localizations", len(app.localizations))
    await update_app_localizations(session, app_info.id, app.localizations)
    log.info("Updating %d app store version localizations", len(app.versions.localizations))
    await update_version_localizations(session, version_id, app.versions.localizations)
    if app.versions.idfa_declaration is not None:
        log.info("Updating IDFA declaration")
        await update_idfa_declaration(session, version_id, app.versions.idfa_declaration)
    if app.versions.routing_coverage is not None:
        log.info("Uploading routing coverage")
        await upload_routing_coverage_asset(session, version_id, app.versions.routing_coverage)
    if app.versions.review_details is not None:
        log.info("Updating review details")
        await update_review_details(session, version_id, app.versions.review_details)


async def release_to_app_store(session: PublishSession, app: App) -> bool:
    """Prepare and submit the App Store version of ``session.ctx.version`` for ``app``.

    Records whether this is the app's first release on the context before any
    work is fanned out. Returns ``False`` when submission is disabled.
    """

    ctx = session.ctx
    log = session.log
    remote_app = await find_app(session.client, app.bundle_id)
    ctx.version_is_initial_release = await release_is_initial(session.client, remote_app.id)
    build = await find_build(session.client, remote_app.id, ctx.version, ctx.build)
    version = await create_version_if_needed(session, remote_app.id, build.id, app.versions)
    log.info(
        "Found app %s, build %s, version %s",
        app.bundle_id,
        build.attr("version"),
        version.attr("versionString", ctx.version),
    )

    if ctx.skip_update_metadata:
        log.warning("Skipping metadata updates")
    else:
        log.info("Updating metadata")
        await update_version_details(session, remote_app.id, version.id, app)

    if ctx.skip_submit:
        return False
    if app.versions.phased_release_enabled and not ctx.version_is_initial_release:
        log.info("Enabling phased release")
        await enable_phased_release(session, version.id)
    log.info("Submitting version %s to the App Store", ctx.version)
    await submit_app(session, version.id)
    return True
