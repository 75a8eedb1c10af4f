"""
Rule-Based Access Control (RuBAC) Engine

System-wide conditional rules evaluated first-match against request context.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional

import structlog

from config import DefaultEffect, Settings, get_settings
from accessgate.exceptions import NotFoundError
from accessgate.models.decisions import AccessDecision, AccessModel
from accessgate.models.rules import (
    COMPANY_NETWORK,
    DEPARTMENT_MATCH,
    AttributeTerm,
    DepartmentTerm,
    NetworkTerm,
    Rule,
    RuleCondition,
    RuleContext,
    RuleEffect,
    TimeWindow,
    TimeWindowTerm,
)
from accessgate.storage.base import RuleStore

from .environment import is_company_network, is_working_hours

logger = structlog.get_logger(__name__)


class RuleEvaluator:
    """
    Rule-Based Access Control Engine.

    Active rules are evaluated in stored (creation) order and the first rule
    whose condition matches decides: ALLOW allows, DENY denies naming the
    rule. Later rules are never consulted once one has matched, so reordering
    rules can change outcomes.

    When no rule matches the configured default applies; it is ALLOW unless
    ``rule_default_effect`` says otherwise.
    """

    model = AccessModel.RUBAC

    def __init__(
        self,
        store: RuleStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the rule evaluator.

        Args:
            store: Source of the ordered rule set
            settings: Settings for working hours, networks and default effect
            clock: Returns the current local time
        """
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock

    async def evaluate(self, context: RuleContext) -> AccessDecision:
        """
        Fetch the active rules and evaluate them against ``context``.

        Args:
            context: Actor/resource departments, network origin and extras

        Returns:
            The first matching rule's decision, or the default decision
        """
        rules = await self.store.list_active_rules()
        return self.evaluate_rules(rules, context)

    def evaluate_rules(self, rules: Iterable[Rule], context: RuleContext) -> AccessDecision:
        """Evaluate an ordered rule list without touching the store."""
        for rule in rules:
            if not rule.is_active:
                continue
            if not self.condition_matches(rule.condition, context):
                continue

            logger.debug("rule_matched", rule=rule.name, effect=rule.effect.value)
            if rule.effect == RuleEffect.DENY:
                return AccessDecision.deny(self.model, f"Access denied by rule: {rule.name}")
            return AccessDecision.allow(self.model, f"Access allowed by rule: {rule.name}")

        if self.settings.rule_default_effect == DefaultEffect.DENY:
            return AccessDecision.deny(self.model, "No matching rules (default deny)")
        return AccessDecision.allow(self.model, "No matching rules")

    def condition_matches(self, condition: RuleCondition, context: RuleContext) -> bool:
        """All terms must match; an empty condition matches."""
        return all(self._term_matches(term, context) for term in condition.terms)

    def _term_matches(self, term, context: RuleContext) -> bool:
        match term:
            case TimeWindowTerm(window=window):
                in_hours = is_working_hours(
                    context.now or self.clock(),
                    self.settings.working_hours_start,
                    self.settings.working_hours_end,
                )
                return in_hours if window == TimeWindow.WORK_HOURS else not in_hours

            case DepartmentTerm(department=department):
                if context.actor_department is None:
                    return False
                if department == DEPARTMENT_MATCH:
                    return context.actor_department == context.resource_department
                return context.actor_department == department

            case NetworkTerm(origin=origin):
                if origin == COMPANY_NETWORK:
                    return is_company_network(
                        context.network_origin,
                        self.settings.company_network_prefixes,
                        self.settings.company_network_hosts,
                    )
                return context.network_origin == origin

            case AttributeTerm(key=key, value=value):
                return key in context.extra and context.extra[key] == value

            case _:
                raise TypeError(f"Unsupported rule term: {term!r}")

    # ------------------------------------------------------------------
    # Rule administration
    # ------------------------------------------------------------------

    async def create_rule(
        self,
        name: str,
        condition: RuleCondition | dict,
        effect: RuleEffect,
        description: Optional[str] = None,
    ) -> Rule:
        """
        Create an active rule, appended after all existing rules.

        Args:
            name: Rule name (appears in denial reasons)
            condition: Condition model or flat JSON mapping
            effect: ALLOW or DENY
            description: Optional description
        """
        if isinstance(condition, dict):
            condition = RuleCondition.from_mapping(condition)

        rule = await self.store.add_rule(
            Rule(
                name=name,
                description=description,
                condition=condition,
                effect=effect,
                is_active=True,
            )
        )
        logger.info("rule_created", rule_id=rule.id, rule=rule.name, position=rule.position)
        return rule

    async def update_rule(
        self,
        rule_id: str,
        *,
        name: Optional[str] = None,
        condition: Optional[RuleCondition | dict] = None,
        effect: Optional[RuleEffect] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Rule:
        """
        Update fields of an existing rule. Its evaluation position is kept.

        Raises:
            NotFoundError: If the rule does not exist
        """
        rule = await self.store.get_rule(rule_id)
        if rule is None:
            raise NotFoundError("Rule", rule_id)

        if isinstance(condition, dict):
            condition = RuleCondition.from_mapping(condition)

        updates = {
            "name": name,
            "condition": condition,
            "effect": effect,
            "description": description,
            "is_active": is_active,
        }
        changes = {k: v for k, v in updates.items() if v is not None}
        changes["updated_at"] = datetime.utcnow()

        stored = await self.store.save_rule(rule.model_copy(update=changes))
        logger.info("rule_updated", rule_id=rule_id, fields=sorted(changes))
        return stored

    async def list_active_rules(self) -> list[Rule]:
        """List active rules in evaluation order."""
        return await self.store.list_active_rules()
