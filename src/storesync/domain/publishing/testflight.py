"""Publish a build to TestFlight."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from storesync.domain.reconcile import SINGLETON, Reconciler, singleton_key

from .apps import find_app, find_build
from .session import PublishSession, attr_key, compact

if TYPE_CHECKING:
    from storesync.domain.parallel import TaskGroup
    from storesync.domain.ports.remote import RemoteResource
    from storesync.domain.project import (
        App,
        BetaGroup,
        BetaTester,
        ReviewDetails,
        TestflightForApp,
        TestflightLocalization,
    )
    from storesync.domain.reconcile import ReconcilePlan


def beta_app_localization_attributes(localization: TestflightLocalization) -> dict[str, Any]:
    return compact(
        {
            "description": localization.description,
            "feedbackEmail": localization.feedback_email,
            "marketingUrl": localization.marketing_url,
            "privacyPolicyUrl": localization.privacy_policy_url,
            "tvOsPrivacyPolicy": localization.tvos_privacy_policy,
        }
    )


def review_detail_attributes(details: ReviewDetails) -> dict[str, Any]:
    """Attributes shared by beta and App Store review details."""

    attributes: dict[str, Any] = {"notes": details.notes}
    if details.contact is not None:
        attributes.update(
            contactEmail=details.contact.email,
            contactFirstName=details.contact.first_name,
            contactLastName=details.contact.last_name,
            contactPhone=details.contact.phone,
        )
    if details.demo_account is not None:
        attributes.update(
            demoAccountName=details.demo_account.name,
            demoAccountPassword=details.demo_account.password,
            demoAccountRequired=details.demo_account.required,
        )
    return compact(attributes)


def beta_group_attributes(group: BetaGroup) -> dict[str, Any]:
    return compact(
        {
            "publicLinkEnabled": group.public_link_enabled,
            "publicLinkLimitEnabled": group.public_link_limit_enabled,
            "feedbackEnabled": group.feedback_enabled,
            "publicLinkLimit": group.public_link_limit,
        }
    )


def beta_tester_attributes(tester: BetaTester) -> dict[str, Any]:
    return compact(
        {
            "email": tester.email,
            "firstName": tester.first_name,
            "lastName": tester.last_name,
        }
    )


def _missing_singleton(
    session: PublishSession, kind: str
) -> Callable[[str, Any], Awaitable[None]]:
    async def create(_key: str, _declared: object) -> None:
        session.log.warning("No %s exists yet; nothing to update", kind)

    return create


async def update_beta_app_localizations(
    session: PublishSession,
    app_id: str,
    localizations: dict[str, TestflightLocalization],
) -> ReconcilePlan:
    client = session.client

    async def update(remote: RemoteResource, localization: TestflightLocalization) -> None:
        await client.update(
            "betaAppLocalizations", remote.id, beta_app_localization_attributes(localization)
        )

    async def create(locale: str, localization: TestflightLocalization) -> None:
        await client.create(
            "betaAppLocalizations",
            {"locale": locale, **beta_app_localization_attributes(localization)},
            {"app": ("apps", app_id)},
        )

    return await Reconciler(
        kind="beta app localization",
        fetch=partial(client.list, f"apps/{app_id}/betaAppLocalizations"),
        key=attr_key("locale"),
        update=update,
        create=create,
        log=session.log,
    ).run(localizations, session.concurrency)


async def update_beta_build_localizations(
    session: PublishSession,
    build_id: str,
    localizations: dict[str, TestflightLocalization],
) -> ReconcilePlan:
    client = session.client

    async def update(remote: RemoteResource, localization: TestflightLocalization) -> None:
        await client.update(
            "betaBuildLocalizations", remote.id, compact({"whatsNew": localization.whats_new})
        )

    async def create(locale: str, localization: TestflightLocalization) -> None:
        await client.create(
            "betaBuildLocalizations",
            compact({"locale": locale, "whatsNew": localization.whats_new}),
            {"build": ("builds", build_id)},
        )

    return await Reconciler(
        kind="beta build localization",
        fetch=partial(client.list, f"builds/{build_id}/betaBuildLocalizations"),
        key=attr_key("locale"),
        update=update,
        create=create,
        log=session.log,
    ).run(localizations, session.concurrency)


async def update_build_beta_detail(
    session: PublishSession,
    build_id: str,
    testflight: TestflightForApp,
) -> ReconcilePlan:
    async def update(remote: RemoteResource, declared: TestflightForApp) -> None:
        await session.client.update(
            "buildBetaDetails", remote.id, {"autoNotifyEnabled": declared.enable_auto_notify}
        )

    return await Reconciler(
        kind="build beta detail",
        fetch=partial(session.fetch_one, f"builds/{build_id}/buildBetaDetail"),
        key=singleton_key,
        update=update,
        create=_missing_singleton(session, "build beta detail"),
        log=session.log,
    ).run({SINGLETON: testflight})


async def update_beta_license_agreement(
    session: PublishSession,
    app_id: str,
    testflight: TestflightForApp,
) -> ReconcilePlan:
    async def update(remote: RemoteResource, declared: TestflightForApp) -> None:
        await session.client.update(
            "betaLicenseAgreements", remote.id, {"agreementText": declared.license_agreement}
        )

    return await Reconciler(
        kind="beta license agreement",
        fetch=partial(session.fetch_one, f"apps/{app_id}/betaLicenseAgreement"),
        key=singleton_key,
        update=update,
        create=_missing_singleton(session, "beta license agreement"),
        log=session.log,
    ).run({SINGLETON: testflight})


async def update_beta_review_details(
    session: PublishSession,
    app_id: str,
    details: ReviewDetails,
) -> ReconcilePlan:
    async def update(remote: RemoteResource, declared: ReviewDetails) -> None:
        await session.client.update(
            "betaAppReviewDetails", remote.id, review_detail_attributes(declared)
        )

    return await Reconciler(
        kind="beta review details",
        fetch=partial(session.fetch_one, f"apps/{app_id}/betaAppReviewDetail"),
        key=singleton_key,
        update=update,
        create=_missing_singleton(session, "beta review detail"),
        log=session.log,
    ).run({SINGLETON: details})


def group_tester_reconciler(
    session: PublishSession,
    group_id: str,
) -> Reconciler[RemoteResource, BetaTester]:
    """Reconciler for the testers of one beta group, scoped to its remote id."""

    client = session.client

    async def update(remote: RemoteResource, _tester: BetaTester) -> None:
        session.log.debug("Beta tester %s already in group %s", remote.id, group_id)

    async def create(_email: str, tester: BetaTester) -> None:
        await client.create(
            "betaTesters",
            beta_tester_attributes(tester),
            {"betaGroups": ("betaGroups", [group_id])},
        )

    return Reconciler(
        kind="beta group tester",
        fetch=partial(client.list, f"betaGroups/{group_id}/betaTesters"),
        key=attr_key("email"),
        update=update,
        create=create,
        log=session.log,
    )


async def schedule_beta_groups(
    session: PublishSession,
    group: TaskGroup,
    app_id: str,
    build_id: str,
    beta_groups: list[BetaGroup],
) -> ReconcilePlan:
    """Reconcile beta groups, add the build to each, then reconcile each group's testers.

    Testers are scheduled on ``group`` once their beta group's remote id is
    known. When the run overrides beta groups, existing groups only receive the
    build and unknown groups are reported instead of created.
    """

    client = session.client
    override = session.ctx.overrides_beta_groups

    async def assign(group_id: str, declared: BetaGroup) -> None:
        await client.add_relationship("betaGroups", group_id, "builds", "builds", [build_id])
        testers = [(tester.email, tester) for tester in declared.testers]
        await group_tester_reconciler(session, group_id).schedule(testers, group)

    async def update(remote: RemoteResource, declared: BetaGroup) -> None:
        if not override:
            await client.update("betaGroups", remote.id, beta_group_attributes(declared))
        await assign(remote.id, declared)

    async def create(name: str, declared: BetaGroup) -> None:
        if override:
            session.log.warning("Beta group %r not found; skipping", name)
            return
        created = await client.create(
            "betaGroups",
            {"name": name, **beta_group_attributes(declared)},
            {"app": ("apps", app_id)},
        )
        await assign(created.id, declared)

    reconciler = Reconciler(
        kind="beta group",
        fetch=partial(client.list, "betaGroups", {"filter[app]": app_id}),
        key=attr_key("name"),
        update=update,
        create=create,
        log=session.log,
    )
    return await reconciler.schedule([(item.name, item) for item in beta_groups], group)


async def update_beta_groups(
    session: PublishSession,
    app_id: str,
    build_id: str,
    beta_groups: list[BetaGroup],
) -> ReconcilePlan:
    group = session.group()
    plan = await schedule_beta_groups(session, group, app_id, build_id, beta_groups)
    await group.wait()
    return plan


async def update_beta_testers(
    session: PublishSession,
    app_id: str,
    build_id: str,
    testers: list[BetaTester],
) -> ReconcilePlan:
    """Assign the build to the app's declared testers, inviting unknown ones."""

    client = session.client
    params = {"filter[apps]": app_id}
    emails = sorted({tester.email for tester in testers if tester.email})
    if emails:
        params["filter[email]"] = ",".join(emails)

    async def update(remote: RemoteResource, _tester: BetaTester) -> None:
        await client.add_relationship("betaTesters", remote.id, "builds", "builds", [build_id])

    async def create(_email: str, tester: BetaTester) -> None:
        await client.create(
            "betaTesters",
            beta_tester_attributes(tester),
            {"builds": ("builds", [build_id])},
        )

    return await Reconciler(
        kind="beta tester",
        fetch=partial(client.list, "betaTesters", params),
        key=attr_key("email"),
        update=update,
        create=create,
        log=session.log,
    ).run([(tester.email, tester) for tester in testers], session.concurrency)


async def submit_beta_app(session: PublishSession, build_id: str) -> None:
    await session.client.create(
        "betaAppReviewSubmissions", None, {"build": ("builds", build_id)}
    )


async def update_beta_details(
    session: PublishSession,
    app_id: str,
    build_id: str,
    testflight: TestflightForApp,
) -> None:
    log = session.log
    log.info("Updating %d beta app localizations", len(testflight.localizations))
    await update_beta_app_localizations(session, app_id, testflight.localizations)
    log.info("Updating beta build details")
    await update_build_beta_detail(session, build_id, testflight)
    log.info("Updating %d beta build localizations", len(testflight.localizations))
    await update_beta_build_localizations(session, build_id, testflight.localizations)
    log.info("Updating beta license agreement")
    await update_beta_license_agreement(session, app_id, testflight)
    if testflight.review_details is not None:
        log.info("Updating beta review details")
        await update_beta_review_details(session, app_id, testflight.review_details)


async def release_to_testflight(session: PublishSession, app: App) -> bool:
    """Publish the build of ``session.ctx.version`` for ``app`` to TestFlight.

    Returns ``True`` when the build was submitted for beta review and
    ``False`` when submission is disabled for this run.
    """

    ctx = session.ctx
    log = session.log
    remote_app = await find_app(session.client, app.bundle_id)
    build = await find_build(session.client, remote_app.id, ctx.version, ctx.build)
    build_label = f"{ctx.version} ({build.attr('version')})"
    log.info("Found app %s, build %s", app.bundle_id, build_label)

    if ctx.skip_update_metadata:
        log.warning("Skipping metadata updates")
    else:
        log.info("Updating metadata")
        await update_beta_details(session, remote_app.id, build.id, app.testflight)

    if not ctx.skip_update_metadata or ctx.overrides_beta_groups:
        log.info("Updating %d beta groups", len(app.testflight.beta_groups))
        await update_beta_groups(session, remote_app.id, build.id, app.testflight.beta_groups)

    if not ctx.skip_update_metadata or ctx.overrides_beta_testers:
        log.info("Updating %d beta testers", len(app.testflight.beta_testers))
        await update_beta_testers(session, remote_app.id, build.id, app.testflight.beta_testers)

    if ctx.skip_submit:
        return False
    log.info("Submitting build %s to TestFlight", build_label)
    await submit_beta_app(session, build.id)
    return True
