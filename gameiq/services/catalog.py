"""Question catalog: read access to quiz questions keyed by sport/position."""
import json
import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gameiq.models.question import QuizQuestion, QuizDifficulty, QuestionSource
from gameiq.schemas.question import QuestionRecordSchema

logger = logging.getLogger(__name__)

GENERATED_CATEGORY = "generated-scenarios"


def normalize_key(value: str) -> str:
    """'Point Guard' / 'point_guard' -> 'point-guard'."""
    return "-".join(value.strip().lower().replace("_", " ").split())


class QuestionCatalog:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_questions(
        self,
        sport: str,
        position: str,
        source: QuestionSource | None = None,
    ) -> list[QuizQuestion]:
        """All questions for sport/position in catalog order (insertion order)."""
        stmt = select(QuizQuestion).where(
            QuizQuestion.sport == normalize_key(sport),
            QuizQuestion.position == normalize_key(position),
        )
        if source is not None:
            stmt = stmt.where(QuizQuestion.source == source)
        result = await self.db.execute(stmt.order_by(QuizQuestion.id.asc()))
        return list(result.scalars().all())

    async def get_by_ids(self, question_ids: Iterable[int]) -> dict[int, QuizQuestion]:
        ids = list(question_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(QuizQuestion).where(QuizQuestion.id.in_(ids)))
        return {q.id: q for q in result.scalars().all()}

    async def get_ordered(self, question_ids: Sequence[int]) -> list[QuizQuestion]:
        """Questions in exactly the given order; missing ids are dropped."""
        by_id = await self.get_by_ids(question_ids)
        return [by_id[qid] for qid in question_ids if qid in by_id]

    async def existing_external_ids(self, sport: str, position: str) -> set[str]:
        result = await self.db.execute(
            select(QuizQuestion.external_id).where(
                QuizQuestion.sport == normalize_key(sport),
                QuizQuestion.position == normalize_key(position),
            )
        )
        return set(result.scalars().all())

    def build_question(
        self,
        sport: str,
        position: str,
        record: QuestionRecordSchema,
        category: str,
        source: QuestionSource = QuestionSource.CATALOG,
        external_id: str | None = None,
    ) -> QuizQuestion:
        return QuizQuestion(
            sport=normalize_key(sport),
            position=normalize_key(position),
            category=category,
            external_id=external_id or record.id,
            scenario=record.scenario,
            question=record.question,
            options_json=json.dumps([o.model_dump() for o in record.options], ensure_ascii=False),
            correct_option_id=record.correct,
            explanation=record.explanation,
            difficulty=QuizDifficulty(record.difficulty.upper()),
            tags_json=json.dumps(record.tags, ensure_ascii=False),
            source=source,
        )

    async def add_generated(
        self,
        sport: str,
        position: str,
        records: Sequence[QuestionRecordSchema],
        batch_tag: str,
    ) -> list[QuizQuestion]:
        """Stage generated questions in the current transaction (flush, no commit)."""
        questions = [
            self.build_question(
                sport,
                position,
                record,
                category=record.category_hint or GENERATED_CATEGORY,
                source=QuestionSource.GENERATED,
                external_id=f"generated_{batch_tag}_{record.id}",
            )
            for record in records
        ]
        self.db.add_all(questions)
        await self.db.flush()
        logger.info(
            "Staged %d generated questions for %s/%s",
            len(questions), sport, position,
            extra={"sport": sport, "position": position, "count": len(questions)},
        )
        return questions
