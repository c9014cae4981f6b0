"""Usage ledger: monthly AI spend per user, capped by subscription tier.

Spend is never stored as a running balance; it is the sum of
``ai_usage_records.cost_cents`` since the first instant of the current
calendar month (server-local clock). ``check_budget`` is a gate run *before*
an AI call; ``record_usage`` appends the call's cost afterwards.

Every budget check starts by bumping ``users.ledger_version``. That UPDATE is
a real write lock on any backend (row lock on Postgres, the database write
lock on SQLite) and is held until the caller's transaction ends, so
check-then-record in one session is serialised per user. ``charge`` does
both steps in one call for callers that report usage after the fact.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gameiq.core.config import Settings, get_settings
from gameiq.core.errors import ErrorKind, Result
from gameiq.models.usage import AIFeature, AIUsageRecord
from gameiq.models.user import SubscriptionTier, User


@dataclass(frozen=True)
class BudgetStatus:
    tier: SubscriptionTier
    spent_cents: int
    cap_cents: int

    @property
    def remaining_cents(self) -> int:
        return max(0, self.cap_cents - self.spent_cents)


@dataclass(frozen=True)
class UsageCharge:
    cost_cents: int
    spent_cents: int  # including this charge
    cap_cents: int


@dataclass(frozen=True)
class UsageSummary:
    tier: SubscriptionTier
    spent_cents: int
    cap_cents: int
    input_tokens: int
    output_tokens: int
    calls: int

    @property
    def remaining_cents(self) -> int:
        return max(0, self.cap_cents - self.spent_cents)


def compute_cost_cents(input_tokens: int, output_tokens: int, settings: Settings | None = None) -> int:
    """Cost of one call in whole cents, rounded half-up."""
    settings = settings or get_settings()
    cost = (
        Decimal(input_tokens) * Decimal(str(settings.input_token_cost_cents))
        + Decimal(output_tokens) * Decimal(str(settings.output_token_cost_cents))
    )
    return int(cost.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class UsageLedger:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.logger = logger or logging.getLogger(__name__)
        self.now = now

    def cap_for(self, tier: SubscriptionTier) -> int:
        if tier == SubscriptionTier.BASIC:
            return self.settings.basic_monthly_cap_cents
        if tier == SubscriptionTier.PREMIUM:
            return self.settings.premium_monthly_cap_cents
        return 0

    async def _lock_user(self, user_id: int) -> User | None:
        # Must be the first write of the transaction; held until commit/rollback
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(ledger_version=User.ledger_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        locked = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return locked.scalar_one()

    async def _month_totals(self, user_id: int) -> tuple[int, int, int, int]:
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(AIUsageRecord.cost_cents), 0),
                func.coalesce(func.sum(AIUsageRecord.input_tokens), 0),
                func.coalesce(func.sum(AIUsageRecord.output_tokens), 0),
                func.count(AIUsageRecord.id),
            ).where(
                AIUsageRecord.user_id == user_id,
                AIUsageRecord.created_at >= month_start(self.now()),
            )
        )
        spent, tokens_in, tokens_out, calls = result.one()
        return int(spent), int(tokens_in), int(tokens_out), int(calls)

    async def spent_this_month(self, user_id: int) -> int:
        spent, _, _, _ = await self._month_totals(user_id)
        return spent

    async def _gate(self, user_id: int) -> Result[BudgetStatus]:
        user = await self._lock_user(user_id)
        if user is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"User not found: {user_id}")

        if user.subscription_tier == SubscriptionTier.NONE:
            self.logger.info("Budget check rejected: no subscription", extra={"user_id": user_id})
            return Result.failure(
                ErrorKind.SUBSCRIPTION_REQUIRED,
                "Active subscription required. Choose Basic or Premium to use AI features.",
            )

        cap = self.cap_for(user.subscription_tier)
        spent = await self.spent_this_month(user_id)

        if spent >= cap:
            self.logger.info(
                "Budget check rejected: %d >= %d cents", spent, cap,
                extra={"user_id": user_id, "tier": user.subscription_tier.value, "spent_cents": spent},
            )
            return Result.failure(
                ErrorKind.BUDGET_EXCEEDED,
                f"Monthly AI budget exceeded (${spent / 100:.2f} of ${cap / 100:.2f}).",
                spent_cents=spent,
                cap_cents=cap,
                remaining_cents=0,
            )

        self.logger.debug(
            "Budget check ok: %d < %d cents", spent, cap,
            extra={"user_id": user_id, "tier": user.subscription_tier.value, "spent_cents": spent},
        )
        return Result.success(BudgetStatus(tier=user.subscription_tier, spent_cents=spent, cap_cents=cap))

    async def check_budget(self, user_id: int) -> Result[BudgetStatus]:
        """Gate before an AI call.

        On success the ledger lock stays held until the caller commits or
        rolls back; a rejection rolls back and releases it.
        """
        status = await self._gate(user_id)
        if not status.ok:
            await self.db.rollback()
        return status

    async def record_usage(
        self,
        user_id: int,
        input_tokens: int,
        output_tokens: int,
        feature: AIFeature = AIFeature.CHAT,
        commit: bool = True,
    ) -> Result[int]:
        """Append one AI call to the ledger; returns its cost in cents."""
        if input_tokens < 0 or output_tokens < 0:
            return Result.failure(ErrorKind.VALIDATION, "Token counts must be non-negative")

        user = await self.db.get(User, user_id)
        if user is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"User not found: {user_id}")

        cost = compute_cost_cents(input_tokens, output_tokens, self.settings)
        self.db.add(
            AIUsageRecord(
                user_id=user_id,
                feature=feature,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost_cents=cost,
                created_at=self.now(),
            )
        )
        if commit:
            await self.db.commit()
        else:
            await self.db.flush()

        self.logger.info(
            "Recorded %s usage: %d in / %d out tokens = %d cents",
            feature.value, input_tokens, output_tokens, cost,
            extra={"user_id": user_id, "feature": feature.value, "cost_cents": cost},
        )
        return Result.success(cost)

    async def charge(
        self,
        user_id: int,
        input_tokens: int,
        output_tokens: int,
        feature: AIFeature = AIFeature.CHAT,
    ) -> Result[UsageCharge]:
        """Budget check and usage record in one transaction under the ledger lock."""
        if input_tokens < 0 or output_tokens < 0:
            return Result.failure(ErrorKind.VALIDATION, "Token counts must be non-negative")

        budget = await self.check_budget(user_id)
        if not budget.ok:
            return Result.from_error(budget.error)

        recorded = await self.record_usage(user_id, input_tokens, output_tokens, feature)
        if not recorded.ok:
            await self.db.rollback()
            return Result.from_error(recorded.error)

        status = budget.value
        return Result.success(
            UsageCharge(
                cost_cents=recorded.value,
                spent_cents=status.spent_cents + recorded.value,
                cap_cents=status.cap_cents,
            )
        )

    async def monthly_usage(self, user_id: int) -> Result[UsageSummary]:
        user = await self.db.get(User, user_id)
        if user is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"User not found: {user_id}")
        spent, tokens_in, tokens_out, calls = await self._month_totals(user_id)
        return Result.success(
            UsageSummary(
                tier=user.subscription_tier,
                spent_cents=spent,
                cap_cents=self.cap_for(user.subscription_tier),
                input_tokens=tokens_in,
                output_tokens=tokens_out,
                calls=calls,
            )
        )
