from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, List, Mapping, Tuple

from .exceptions import BankValidationError, UnknownQuestion

FREQUENCY_LABELS = ["Never", "Almost never", "Sometimes", "Fairly often", "Very often"]


@dataclass(frozen=True)
class Option:
    value: int
    label: str


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    options: Tuple[Option, ...]

    def option_values(self) -> List[int]:
        return [option.value for option in self.options]


def frequency_options(reverse: bool = False) -> List[dict]:
    if reverse:
        return [{"value": 4 - i, "label": label} for i, label in enumerate(FREQUENCY_LABELS)]
    return [{"value": i, "label": label} for i, label in enumerate(FREQUENCY_LABELS)]


def labelled_options(labels: List[str]) -> List[dict]:
    return [{"value": i, "label": label} for i, label in enumerate(labels)]


# q1-q20 are frequency items; positively worded ones are reverse-scored.
STRESS_QUESTION_DATA = [
    {"id": "q1", "prompt": "How often have you felt nervous or stressed in the past week?",
     "options": frequency_options()},
    {"id": "q2", "prompt": "How often have you felt unable to control important things in your life?",
     "options": frequency_options()},
    {"id": "q3", "prompt": "How often have you felt confident about handling personal problems?",
     "options": frequency_options(reverse=True)},
    {"id": "q4", "prompt": "How often have you felt that things were going your way?",
     "options": frequency_options(reverse=True)},
    {"id": "q5", "prompt": "How often have you felt difficulties piling up so high you couldn't overcome them?",
     "options": frequency_options()},
    {"id": "q6", "prompt": "How often have you felt overwhelmed by your responsibilities?",
     "options": frequency_options()},
    {"id": "q7", "prompt": "How often have you had trouble falling asleep or staying asleep?",
     "options": frequency_options()},
    {"id": "q8", "prompt": "How often have you felt irritable or easily annoyed?",
     "options": frequency_options()},
    {"id": "q9", "prompt": "How often have you felt physically tense or on edge?",
     "options": frequency_options()},
    {"id": "q10", "prompt": "How often have you felt like you could not cope with all the things you had to do?",
     "options": frequency_options()},
    {"id": "q11", "prompt": "How often have you felt that you were not able to control the important things in your life?",
     "options": frequency_options()},
    {"id": "q12", "prompt": "How often have you felt that problems were accumulating and you could not overcome them?",
     "options": frequency_options()},
    {"id": "q13", "prompt": "How often have you felt that you were on top of things?",
     "options": frequency_options(reverse=True)},
    {"id": "q14", "prompt": "How often have you felt angry because of things that were outside of your control?",
     "options": frequency_options()},
    {"id": "q15", "prompt": "How often have you felt difficulties were piling up so high that you could not overcome them?",
     "options": frequency_options()},
    {"id": "q16", "prompt": "How often have you felt that you were not able to control the important things in your life?",
     "options": frequency_options()},
    {"id": "q17", "prompt": "How often have you felt confident about your ability to handle your personal problems?",
     "options": frequency_options(reverse=True)},
    {"id": "q18", "prompt": "How often have you felt that things were going your way?",
     "options": frequency_options(reverse=True)},
    {"id": "q19", "prompt": "How often have you felt that you were effectively coping with important changes that were occurring in your life?",
     "options": frequency_options(reverse=True)},
    {"id": "q20", "prompt": "How often have you felt that you were able to control irritations in your life?",
     "options": frequency_options(reverse=True)},
    {"id": "q21", "prompt": "What is your primary source of stress right now?",
     "options": labelled_options(["No significant stress", "Work or academic pressure", "Personal relationships",
                                  "Financial concerns", "Health issues"])},
    {"id": "q22", "prompt": "When do you feel most stressed during the day?",
     "options": labelled_options(["I rarely feel stressed", "Early morning", "Midday", "Late afternoon",
                                  "Evening or night"])},
    {"id": "q23", "prompt": "How do you typically respond to stressful situations?",
     "options": labelled_options(["I handle them calmly", "I take time to think", "I get slightly anxious",
                                  "I become overwhelmed", "I panic or freeze"])},
    {"id": "q24", "prompt": "What physical symptoms do you experience when stressed?",
     "options": labelled_options(["None", "Slight tension", "Headaches or muscle tension", "Digestive issues",
                                  "Multiple physical symptoms"])},
    {"id": "q25", "prompt": "When was the last time you felt completely relaxed?",
     "options": labelled_options(["Today", "This week", "This month", "A few months ago", "I cannot remember"])},
    {"id": "q26", "prompt": "How well do you sleep when under stress?",
     "options": labelled_options(["I sleep well", "Slightly disturbed", "Moderate sleep issues",
                                  "Significant sleep problems", "Severe insomnia"])},
    {"id": "q27", "prompt": "What coping mechanisms do you use when stressed?",
     "options": labelled_options(["Healthy strategies", "Exercise or meditation", "Talking to friends",
                                  "Avoidance or distraction", "Unhealthy habits"])},
    {"id": "q28", "prompt": "How does stress affect your relationships?",
     "options": labelled_options(["No negative impact", "Minor irritability", "Some withdrawal",
                                  "Frequent conflicts", "Severe relationship strain"])},
    {"id": "q29", "prompt": "When you feel overwhelmed, what do you do first?",
     "options": labelled_options(["Take a break", "Prioritize tasks", "Ask for help", "Push through",
                                  "Shut down"])},
    {"id": "q30", "prompt": "How often do you take breaks during stressful periods?",
     "options": labelled_options(["Regularly", "Sometimes", "Rarely", "Almost never", "Never"])},
    {"id": "q31", "prompt": "What would help you manage stress better?",
     "options": labelled_options(["I already manage well", "Better time management", "More support from others",
                                  "Professional help", "Major life changes"])},
    {"id": "q32", "prompt": "How does stress impact your concentration?",
     "options": labelled_options(["No impact", "Slight difficulty", "Moderate problems", "Significant impairment",
                                  "Severe concentration issues"])},
    {"id": "q33", "prompt": "When stressed, how do you treat yourself?",
     "options": labelled_options(["With kindness", "Neutrally", "With some criticism", "Harshly",
                                  "Very harshly"])},
    {"id": "q34", "prompt": "What triggers your stress most frequently?",
     "options": labelled_options(["Nothing specific", "Deadlines", "Social situations", "Uncertainty",
                                  "Multiple triggers"])},
    {"id": "q35", "prompt": "How do you feel about your ability to handle future stress?",
     "options": labelled_options(["Very confident", "Somewhat confident", "Neutral", "Somewhat worried",
                                  "Very worried"])},
    {"id": "q36", "prompt": "What is your stress level compared to last month?",
     "options": labelled_options(["Much lower", "Slightly lower", "About the same", "Slightly higher",
                                  "Much higher"])},
    {"id": "q37", "prompt": "How often do you feel like you need a break from everything?",
     "options": labelled_options(["Never", "Rarely", "Sometimes", "Often", "Constantly"])},
    {"id": "q38", "prompt": "What happens to your energy levels when you are stressed?",
     "options": labelled_options(["They stay normal", "Slight decrease", "Moderate decrease",
                                  "Significant decrease", "Complete exhaustion"])},
    {"id": "q39", "prompt": "How do you prioritize self-care when stressed?",
     "options": labelled_options(["It is a priority", "I try to maintain it", "Sometimes I remember",
                                  "I often forget", "I completely neglect it"])},
    {"id": "q40", "prompt": "What is your biggest worry right now?",
     "options": labelled_options(["No major worries", "Minor concerns", "Moderate worries", "Significant concerns",
                                  "Major life worries"])},
    {"id": "q41", "prompt": "How do you communicate when you are stressed?",
     "options": labelled_options(["Clearly and calmly", "Mostly clear", "Sometimes unclear", "Often unclear",
                                  "Very unclear"])},
    {"id": "q42", "prompt": "What is your stress tolerance level?",
     "options": labelled_options(["Very high", "High", "Moderate", "Low", "Very low"])},
    {"id": "q43", "prompt": "How do you handle unexpected changes?",
     "options": labelled_options(["Very well", "Generally well", "With some difficulty",
                                  "With significant difficulty", "Very poorly"])},
    {"id": "q44", "prompt": "What is your stress recovery time?",
     "options": labelled_options(["Immediate", "Within hours", "Within days", "Within weeks", "Takes months"])},
    {"id": "q45", "prompt": "How do you view stress in your life?",
     "options": labelled_options(["As a challenge to overcome", "As manageable", "As sometimes overwhelming",
                                  "As a major problem", "As unbearable"])},
    {"id": "q46", "prompt": "What is your support system like?",
     "options": labelled_options(["Excellent", "Good", "Adequate", "Limited", "Minimal or none"])},
    {"id": "q47", "prompt": "How do you feel about asking for help when stressed?",
     "options": labelled_options(["Very comfortable", "Somewhat comfortable", "Neutral", "Somewhat uncomfortable",
                                  "Very uncomfortable"])},
    {"id": "q48", "prompt": "What is your stress management knowledge?",
     "options": labelled_options(["Very knowledgeable", "Somewhat knowledgeable", "Basic knowledge",
                                  "Limited knowledge", "No knowledge"])},
    {"id": "q49", "prompt": "How do you balance work and personal life when stressed?",
     "options": labelled_options(["Very well", "Generally well", "With some difficulty",
                                  "With significant difficulty", "Very poorly"])},
    {"id": "q50", "prompt": "What is your overall stress outlook?",
     "options": labelled_options(["Very positive", "Somewhat positive", "Neutral", "Somewhat negative",
                                  "Very negative"])},
]


def build_question(item: dict) -> Question:
    return Question(
        id=item["id"],
        prompt=item["prompt"],
        options=tuple(Option(value=opt["value"], label=opt["label"]) for opt in item["options"]),
    )


def validate_bank(questions: Iterable[Question]) -> None:
    """Self-check run at startup. Raises BankValidationError on the first problem."""
    questions = list(questions)
    if not questions:
        raise BankValidationError("Question bank is empty.")
    seen = set()
    for question in questions:
        if not question.id:
            raise BankValidationError("Question without an id.")
        if question.id in seen:
            raise BankValidationError(f"Duplicate question id: {question.id}")
        seen.add(question.id)
        if not question.prompt.strip():
            raise BankValidationError(f"Question {question.id} has no prompt.")
        if not question.options:
            raise BankValidationError(f"Question {question.id} has no options.")
        values = question.option_values()
        for value in values:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise BankValidationError(
                    f"Question {question.id} has invalid option value {value!r}."
                )
        if len(set(values)) != len(values):
            raise BankValidationError(f"Question {question.id} repeats an option value.")


STRESS_QUESTIONS: Tuple[Question, ...] = tuple(build_question(item) for item in STRESS_QUESTION_DATA)
QUESTIONS_BY_ID: Mapping[str, Question] = MappingProxyType({q.id: q for q in STRESS_QUESTIONS})


def all_questions() -> Tuple[Question, ...]:
    return STRESS_QUESTIONS


def get_question(question_id: str) -> Question:
    question = QUESTIONS_BY_ID.get(question_id)
    if question is None:
        raise UnknownQuestion(question_id)
    return question


def max_option_value(questions: Iterable[Question] = STRESS_QUESTIONS) -> int:
    values = [value for question in questions for value in question.option_values()]
    return max(values) if values else 0
