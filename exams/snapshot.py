"""
Immutable exam definition snapshots and the pure functions that derive a
per-attempt presentation from them.

A snapshot is frozen once built and may be shared or cached across attempts.
Randomization never touches it: it produces a *layout* (ordered ids per
section and per question) that is stored on the attempt and re-applied to the
snapshot whenever the attempt is rendered.
"""
import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .choices import AUTO_GRADABLE_TYPES, ResultsVisibility


@dataclass(frozen=True)
class OptionSnapshot:
    id: int
    text: str
    order: int = 0
    is_correct: bool = False


@dataclass(frozen=True)
class QuestionSnapshot:
    id: int
    type: str
    text: str
    points: float
    order: int = 0
    options: Tuple[OptionSnapshot, ...] = ()
    correct_answer: Optional[Dict[str, Any]] = None
    feedback: str = ''
    help_text: str = ''

    @property
    def option_ids(self) -> frozenset:
        return frozenset(option.id for option in self.options)

    @property
    def correct_option_ids(self) -> frozenset:
        return frozenset(option.id for option in self.options if option.is_correct)


@dataclass(frozen=True)
class SectionSnapshot:
    id: int
    title: str
    description: str = ''
    order: int = 0
    questions: Tuple[QuestionSnapshot, ...] = ()


@dataclass(frozen=True)
class ExamDefinitionSnapshot:
    exam_id: int
    version_id: int
    version: int
    total_points: float
    sections: Tuple[SectionSnapshot, ...] = ()

    def iter_questions(self) -> Iterator[QuestionSnapshot]:
        for section in self.sections:
            yield from section.questions

    def get_question(self, question_id) -> Optional[QuestionSnapshot]:
        for question in self.iter_questions():
            if question.id == question_id:
                return question
        return None


@dataclass(frozen=True)
class ExamMeta:
    id: int
    slug: str
    title: str
    description: str = ''
    is_active: bool = True
    is_public: bool = True
    max_attempts: int = 1
    time_limit: Optional[int] = None
    passing_score: float = 60.0
    auto_grade: bool = False
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_results: str = ResultsVisibility.IMMEDIATE
    allow_review: bool = True

    @property
    def is_available(self) -> bool:
        return self.is_active and self.is_public


def is_auto_gradable(snapshot: ExamDefinitionSnapshot) -> bool:
    return all(q.type in AUTO_GRADABLE_TYPES for q in snapshot.iter_questions())


def fisher_yates(items: Sequence, rng: random.Random) -> List:
    """Return a shuffled copy of ``items``; the input is left untouched."""
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def randomize(snapshot: ExamDefinitionSnapshot, rng: random.Random,
              shuffle_questions: bool = False, shuffle_options: bool = False) -> ExamDefinitionSnapshot:
    """New snapshot with questions shuffled per section and options per question.

    Sections keep their order.
    """
    sections = []
    for section in snapshot.sections:
        questions = section.questions
        if shuffle_questions:
            questions = fisher_yates(questions, rng)
        if shuffle_options:
            questions = [
                replace(q, options=tuple(fisher_yates(q.options, rng))) if q.options else q
                for q in questions
            ]
        sections.append(replace(section, questions=tuple(questions)))
    return replace(snapshot, sections=tuple(sections))


def layout_of(snapshot: ExamDefinitionSnapshot) -> Dict[str, Dict[str, List[int]]]:
    """JSON-safe record of the question and option order of ``snapshot``."""
    return {
        'questions': {
            str(section.id): [q.id for q in section.questions]
            for section in snapshot.sections
        },
        'options': {
            str(q.id): [o.id for o in q.options]
            for q in snapshot.iter_questions() if q.options
        },
    }


def _reorder(items, ordered_ids) -> tuple:
    if not ordered_ids:
        return tuple(items)
    position = {item_id: index for index, item_id in enumerate(ordered_ids)}
    # Items missing from the stored order keep their place after the known ones.
    return tuple(sorted(items, key=lambda item: position.get(item.id, len(position))))


def apply_layout(snapshot: ExamDefinitionSnapshot, layout: Optional[dict]) -> ExamDefinitionSnapshot:
    if not layout:
        return snapshot
    question_order = layout.get('questions', {})
    option_order = layout.get('options', {})
    sections = []
    for section in snapshot.sections:
        questions = [
            replace(q, options=_reorder(q.options, option_order.get(str(q.id))))
            for q in _reorder(section.questions, question_order.get(str(section.id)))
        ]
        sections.append(replace(section, questions=tuple(questions)))
    return replace(snapshot, sections=tuple(sections))


def public_question(question: QuestionSnapshot) -> dict:
    data = {
        'id': question.id,
        'type': str(question.type),
        'text': question.text,
        'help_text': question.help_text,
        'points': question.points,
        'order': question.order,
    }
    if question.options:
        data['options'] = [
            {'id': option.id, 'text': option.text, 'order': option.order}
            for option in question.options
        ]
    return data


def sanitize(snapshot: ExamDefinitionSnapshot) -> dict:
    """Test-taker view: no ``is_correct``, ``correct_answer`` or feedback."""
    return {
        'id': snapshot.version_id,
        'version': snapshot.version,
        'sections': [
            {
                'id': section.id,
                'title': section.title,
                'description': section.description,
                'order': section.order,
                'questions': [public_question(q) for q in section.questions],
            }
            for section in snapshot.sections
        ],
    }
