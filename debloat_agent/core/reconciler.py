"""Reconciler — plans, executes, verifies and repairs package state changes."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from debloat_agent.core.commands import apply_pkg_state_commands, supports_multi_user
from debloat_agent.core.config import Settings
from debloat_agent.core.cross_user import detect_cross_user_behavior
from debloat_agent.core.errors import NoFallbackAvailable
from debloat_agent.core.executor import CommandExecutor
from debloat_agent.core.fallback import FallbackEngine
from debloat_agent.core.models import (
    ActionPlan,
    CorePackage,
    Device,
    PackageState,
    ReconcileResult,
    Removal,
    User,
)
from debloat_agent.core.verifier import verify_package_state
from debloat_agent.transport.base import Transport

logger = logging.getLogger(__name__)


class Reconciler:
    """Moves packages between lifecycle states on one device at a time.

    Each call is an independent unit of work; callers may run calls for
    different packages concurrently, but the commands of one plan always
    run in order.
    """

    def __init__(
        self,
        transport: Transport,
        settings: Optional[Settings] = None,
        executor: Optional[CommandExecutor] = None,
    ):
        self.transport = transport
        self.settings = settings or Settings()
        self.executor = executor or CommandExecutor(transport)
        self.fallback = FallbackEngine(self.executor)

    def multi_user_mode(self, device: Device) -> bool:
        if self.settings.multi_user_mode is None:
            return supports_multi_user(device)
        return self.settings.multi_user_mode and supports_multi_user(device)

    def plan(
        self,
        device: Device,
        primary: CorePackage,
        per_user: Mapping[int, CorePackage],
        selected_user_ids: Optional[set[int]] = None,
    ) -> list[ActionPlan]:
        """Build one plan per unprotected user for a package row.

        ``per_user`` maps user ids to that user's view of the package. In
        multi-user mode every unprotected user receives the primary row's
        target state; otherwise only ``selected_user_ids`` are planned, each
        toggled from its own state.
        """
        if primary.removal == Removal.UNSAFE and not self.settings.expert_mode:
            logger.warning(
                "Refusing to change unsafe package %s outside expert mode",
                primary.name,
            )
            return []

        multi_user = self.multi_user_mode(device)
        disable_mode = self.settings.disable_mode
        selected = selected_user_ids or set()
        plans = []
        for user in device.user_list:
            if user.protected:
                continue
            pkg = per_user.get(user.id)
            if pkg is None:
                continue
            if multi_user:
                wanted = primary.state.opposite(disable_mode)
            elif user.id in selected:
                wanted = pkg.state.opposite(disable_mode)
            else:
                continue
            try:
                commands = apply_pkg_state_commands(pkg, wanted, device, user)
            except ValueError as e:
                logger.warning("Skipping %s for %s: %s", pkg.name, user, e)
                continue
            if not commands:
                logger.debug("Nothing to do for %s on %s", pkg.name, user)
                continue
            plans.append(ActionPlan(
                package=pkg, user=user, wanted_state=wanted, commands=commands,
            ))
        return plans

    def apply(self, device: Device, plan: ActionPlan) -> ReconcileResult:
        """Execute a plan, verify it and repair the outcome if needed.

        A failure of the state-changing command propagates as
        TransportError.
        """
        outcomes = self.executor.run_sequence(device.adb_id, plan.commands)
        user_id = plan.user.id if supports_multi_user(device) else None
        actual = verify_package_state(
            self.transport, device.adb_id, plan.package.name, user_id
        )
        result = ReconcileResult(
            package=plan.package.name,
            user=plan.user,
            wanted_state=plan.wanted_state,
            actual_state=actual,
            outcomes=outcomes,
        )

        if not plan.commands:
            # Nothing was sent, so there is no outcome to repair.
            if actual != plan.wanted_state:
                result.error = (
                    f"No command moves {plan.package.name} from "
                    f"{plan.package.state} to {plan.wanted_state} "
                    f"on API level {device.android_sdk}"
                )
                logger.warning("%s", result.error)
            return result

        if actual == plan.wanted_state:
            result.cross_user_note = detect_cross_user_behavior(
                self.transport,
                plan.package.name,
                device,
                plan.user.id,
                plan.wanted_state,
                actual,
            )
            if result.cross_user_note:
                logger.info(result.cross_user_note)
            return result

        logger.warning(
            "%s is %s on %s after applying, wanted %s",
            plan.package.name, actual, plan.user, plan.wanted_state,
        )
        try:
            result.fallback = self.fallback.attempt(
                plan.package, plan.wanted_state, actual, plan.user, device
            )
        except NoFallbackAvailable as e:
            logger.error("%s", e)
            result.error = str(e)
        return result

    def change_state(
        self,
        device: Device,
        package: CorePackage,
        wanted_state: PackageState,
        user: User,
    ) -> ReconcileResult:
        """Move one package to ``wanted_state`` for a single user."""
        if user.protected:
            raise ValueError(f"{user} is protected and cannot be modified")
        if wanted_state == PackageState.ALL:
            raise ValueError("All is a filter, not a package state")
        if package.removal == Removal.UNSAFE and not self.settings.expert_mode:
            raise ValueError(
                f"{package.name} is unsafe to change outside expert mode"
            )
        commands = apply_pkg_state_commands(package, wanted_state, device, user)
        plan = ActionPlan(
            package=package, user=user, wanted_state=wanted_state, commands=commands,
        )
        return self.apply(device, plan)
