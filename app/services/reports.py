"""Report views built from the history ledger.

Provides:
- stability_index / history_stability - stable vs unstable under time pressure
- build_session_report - report for the most recent session
- build_student_report - report over a student's whole profile history
- chart_series - PAI / accuracy / stability series for the history chart
- summarize_class - class dashboard aggregates from a roster
"""

from collections import Counter
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.db.training_state import DEFAULT_STUDENT_NAME
from app.models.training import HistoryRecord, StudentProfile, WeakTopicMarker, round_half_up

STABLE = "Тұрақты"
UNSTABLE = "Тұрақсыз"
MIXED = "Аралас"
NO_DATA = "—"
NO_ERA = "ERA есебі жоқ."
NO_WEAK_TOPIC = "Әлсіз тақырып анықталмаған."

PRESSURE_MARKER = "pressure instability"

STABLE_CHART_VALUE = 100
UNSTABLE_CHART_VALUE = 40

REC_ADVANCE = "Жалпы нәтиже жоғары. Қиынырақ деңгейдегі есептерге біртіндеп өту ұсынылады."
REC_BASICS = "Негізгі тақырыптарды қайта қарау және базалық есептерді көбірек қайталау қажет."
REC_CARELESS = (
    "Қате жауаптардың бір бөлігі ұқыпсыздықпен байланысты. "
    "Есепті жібермес бұрын шешімді қайта тексеру дағдысын күшейтіңіз."
)
REC_KNOWLEDGE_GAP = (
    "Бірнеше рет қатарынан қателер байқалды. "
    "Осы тақырып бойынша теорияны қайта оқып, мысалдарды біртіндеп талдаған жөн."
)
REC_PRESSURE = (
    "Уақыт қысымында тұрақсыздық бар. "
    "Таймермен жаттығуларды көбейту және уақытты бөлу стратегияларын қолдану ұсынылады."
)
REC_STABLE = (
    "Жаттығу нәтижелері тұрақты. "
    "Қазіргі оқу ырғағын сақтап, біртіндеп жаңа тақырыптарға өтуге болады."
)

# Student (whole-history) report wording
REC_PROFILE_ADVANCE = (
    "Жалпы нәтиже жоғары. "
    "Қиынырақ деңгейдегі есептерге және олимпиадалық форматқа біртіндеп өту ұсынылады."
)
REC_PROFILE_BASICS = (
    "Негізгі тақырыптар бойынша түсінікті күшейту үшін базалық есептерді жиі қайталау қажет."
)
REC_PROFILE_MIDDLE = (
    "Жалпы жетістік орташа деңгейде. "
    "Күрделілікті баяу арттыра отырып, әлсіз тақырыптарға қосымша уақыт бөлген дұрыс."
)
REC_PROFILE_CARELESS = (
    "Ұқыпсыз қателерді азайту үшін есепті жібермес бұрын қысқа тексеру чек-листін қолдану ұсынылады."
)
REC_PROFILE_KNOWLEDGE_GAP = (
    "Бірнеше рет қатарынан қателер болған тақырыптарда теорияны қайта қарап, "
    "қарапайымнан күрделіге қарай есептерді шешкен жөн."
)
REC_PROFILE_PRESSURE = (
    "Уақыт қысымында жауаптардың тұрақсыздығы байқалады. "
    "Таймермен жаттығу және уақытты бөлу стратегияларын қолдану маңызды."
)


class SessionReport(BaseModel):
    student_name: str
    date: Optional[str] = None
    grade: Optional[int] = None
    pai: Optional[int] = None
    accuracy: Optional[int] = None
    stability_index: str
    era: str
    weak_topic: str
    recommendations: list[str]


class StudentReport(BaseModel):
    student_name: str
    grade: Optional[int] = None
    sessions: int
    date: Optional[str] = None
    average_pai: Optional[int] = None
    average_accuracy: Optional[int] = None
    stability_index: str
    era: str
    weak_topic: str
    recommendations: list[str]


class RosterEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    grade: int
    pai: int
    weakest_topic: str = Field(alias="weakestTopic")
    stability_index: str = Field(alias="stabilityIndex")


class ClassSummary(BaseModel):
    student_count: int
    average_pai: int
    weakest_topics: list[tuple[str, int]]
    stable: int
    unstable: int
    stable_pct: int
    unstable_pct: int
    ranking: list[RosterEntry]


def _is_unstable(era: str) -> bool:
    return PRESSURE_MARKER in era.lower()


def stability_index(record: Optional[HistoryRecord]) -> str:
    if record is not None and _is_unstable(record.era):
        return UNSTABLE
    return STABLE


def history_stability(history: list[HistoryRecord]) -> str:
    if not history:
        return NO_DATA
    unstable = sum(1 for r in history if _is_unstable(r.era))
    if unstable == 0:
        return STABLE
    if unstable / len(history) > 0.5:
        return UNSTABLE
    return MIXED


def _weak_topic_text(marker: Optional[WeakTopicMarker]) -> str:
    if not marker:
        return NO_WEAK_TOPIC
    return f"{marker.topic} (сынып: {marker.grade})"


def session_recommendations(record: Optional[HistoryRecord]) -> list[str]:
    out = []
    pai = record.pai if record else 0
    acc = record.accuracy if record else 0
    era = (record.era if record else "").lower()

    if pai >= 80 and acc >= 80:
        out.append(REC_ADVANCE)
    elif acc < 60:
        out.append(REC_BASICS)

    if "careless mistakes" in era:
        out.append(REC_CARELESS)
    if "knowledge gap detected" in era:
        out.append(REC_KNOWLEDGE_GAP)
    if PRESSURE_MARKER in era:
        out.append(REC_PRESSURE)

    if not out:
        out.append(REC_STABLE)
    return out


def build_session_report(
    history: list[HistoryRecord],
    weak_marker: Optional[WeakTopicMarker] = None,
    student_name: Optional[str] = None,
) -> SessionReport:
    record = history[-1] if history else None
    return SessionReport(
        student_name=student_name or DEFAULT_STUDENT_NAME,
        date=record.date if record else None,
        grade=weak_marker.grade if weak_marker else None,
        pai=record.pai if record else None,
        accuracy=record.accuracy if record else None,
        stability_index=stability_index(record),
        era=record.era if record else NO_ERA,
        weak_topic=_weak_topic_text(weak_marker),
        recommendations=session_recommendations(record),
    )


def _average(values: list[int]) -> Optional[int]:
    if not values:
        return None
    return round_half_up(sum(values) / len(values))


def build_student_report(
    profile: StudentProfile, weak_marker: Optional[WeakTopicMarker] = None
) -> StudentReport:
    history = profile.history
    last = history[-1] if history else None
    avg_pai = _average([r.pai for r in history])
    avg_acc = _average([r.accuracy for r in history])
    era = last.era if last else NO_ERA
    era_lower = era.lower()

    recs = []
    if (avg_pai or 0) >= 80 and (avg_acc or 0) >= 80:
        recs.append(REC_PROFILE_ADVANCE)
    elif (avg_acc or 0) < 60:
        recs.append(REC_PROFILE_BASICS)
    else:
        recs.append(REC_PROFILE_MIDDLE)

    if "careless mistakes" in era_lower:
        recs.append(REC_PROFILE_CARELESS)
    if "knowledge gap detected" in era_lower:
        recs.append(REC_PROFILE_KNOWLEDGE_GAP)
    if PRESSURE_MARKER in era_lower:
        recs.append(REC_PROFILE_PRESSURE)
    if weak_marker:
        recs.append(
            f"Әлсіз тақырып: «{weak_marker.topic}» ({weak_marker.grade}-сынып). "
            "Осы бөлім бойынша жеке жаттығу сессияларын жоспарлаған дұрыс."
        )

    return StudentReport(
        student_name=profile.name,
        grade=profile.grade,
        sessions=len(history),
        date=last.date if last else None,
        average_pai=avg_pai,
        average_accuracy=avg_acc,
        stability_index=history_stability(history),
        era=era,
        weak_topic=_weak_topic_text(weak_marker),
        recommendations=recs,
    )


def chart_series(history: list[HistoryRecord]) -> dict:
    return {
        "labels": [f"#{i + 1}" for i in range(len(history))],
        "pai": [r.pai for r in history],
        "accuracy": [r.accuracy for r in history],
        "stability": [
            UNSTABLE_CHART_VALUE if _is_unstable(r.era) else STABLE_CHART_VALUE for r in history
        ],
    }


def summarize_class(roster: list[RosterEntry], top_topics: int = 4) -> ClassSummary:
    average_pai = round_half_up(sum(s.pai for s in roster) / len(roster)) if roster else 0

    topic_counts = Counter(s.weakest_topic for s in roster)
    weakest = sorted(topic_counts.items(), key=lambda kv: -kv[1])[:top_topics]

    stable = sum(1 for s in roster if s.stability_index == STABLE)
    unstable = len(roster) - stable
    total = (stable + unstable) or 1

    return ClassSummary(
        student_count=len(roster),
        average_pai=average_pai,
        weakest_topics=weakest,
        stable=stable,
        unstable=unstable,
        stable_pct=round_half_up(stable / total * 100),
        unstable_pct=round_half_up(unstable / total * 100),
        ranking=sorted(roster, key=lambda s: -s.pai),
    )
