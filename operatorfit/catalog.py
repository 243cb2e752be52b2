"""Question catalog: the 70-item operator assessment and its scoring metadata.

Numbering drives scoring (see ``scoring.CONTRIBUTIONS``):

- 1–36   likert, five core dimensions
- 37–40  likert trap items (social desirability)
- 41–50  likert mixed-construct items
- 51–60  likert venture-fit items
- 61–65  forced choice, style traits
- 66–70  scenario items
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from string import ascii_uppercase
from typing import Any

LIKERT = "likert"
FORCED_CHOICE = "forcedChoice"
SCENARIO = "scenario"
QUESTION_TYPES = (LIKERT, FORCED_CHOICE, SCENARIO)

QUESTION_DIMENSIONS = (
    "ownership", "execution", "hustle", "problemSolving", "leadership",
    "mixed", "ventureFit", "style", "scenario", "trap",
)

CATALOG_SIZE = 70


@dataclass(frozen=True)
class Question:
    id: int
    number: int
    text: str
    dimension: str
    type: str = LIKERT
    is_reverse: bool = False
    is_trap: bool = False
    options: tuple[str, ...] = ()
    option_mappings: dict[str, dict[str, float]] = field(default_factory=dict)

    def option_keys(self) -> tuple[str, ...]:
        """Answer keys accepted for this question: letters for forced choice, 1-based indices for scenarios."""
        if self.type == FORCED_CHOICE:
            return tuple(ascii_uppercase[: len(self.options)])
        if self.type == SCENARIO:
            return tuple(str(i) for i in range(1, len(self.options) + 1))
        return ()


@dataclass(frozen=True)
class Response:
    question_id: int
    value: Any


def catalog_problems(questions: list[Question]) -> list[str]:
    """Return human-readable integrity problems; an empty list means the catalog is usable."""
    problems: list[str] = []
    seen: set[int] = set()
    for q in questions:
        if q.number in seen:
            problems.append(f"Q{q.number}: duplicate question number")
        seen.add(q.number)
        if q.type not in QUESTION_TYPES:
            problems.append(f"Q{q.number}: unknown type {q.type!r}")
        if q.dimension not in QUESTION_DIMENSIONS:
            problems.append(f"Q{q.number}: unknown dimension {q.dimension!r}")
        if q.number <= 60 and q.type != LIKERT:
            problems.append(f"Q{q.number}: questions 1-60 must be likert")
        if q.is_trap != (37 <= q.number <= 40):
            problems.append(f"Q{q.number}: trap flag must be set exactly on 37-40")
        if q.type != LIKERT:
            if len(q.options) < 2:
                problems.append(f"Q{q.number}: needs at least two options")
            stray = set(q.option_mappings) - set(q.option_keys())
            if stray:
                problems.append(f"Q{q.number}: mappings for unknown options {sorted(stray)}")
    missing = set(range(1, CATALOG_SIZE + 1)) - seen
    if missing:
        problems.append(f"missing question numbers {sorted(missing)}")
    return problems


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------

# (number, dimension, text, is_reverse)
_LIKERT_ITEMS: list[tuple[int, str, str, bool]] = [
    (1, "ownership", "When something I'm responsible for goes wrong, I take the lead on fixing it.", False),
    (2, "ownership", "I treat the outcomes of my projects as if my own name is on them.", False),
    (3, "ownership", "I follow through on commitments even when no one is checking.", False),
    (4, "ownership", "If a task is not clearly assigned to me, I usually leave it for someone else.", True),
    (5, "ownership", "I proactively flag risks before they become problems.", False),
    (6, "ownership", "I hold myself accountable for results, not just effort.", False),
    (7, "ownership", "When a project misses its target, it is usually due to factors outside my control.", True),
    (8, "ownership", "I look for gaps no one owns and step in to close them.", False),
    (9, "execution", "I break large goals into concrete weekly milestones.", False),
    (10, "execution", "I reliably hit the deadlines I commit to.", False),
    (11, "execution", "I keep track of open tasks with a clear system.", False),
    (12, "execution", "I often start new tasks before finishing the ones in progress.", True),
    (13, "execution", "I prefer shipping a good version quickly over a perfect version late.", False),
    (14, "execution", "I regularly review my progress against the plan and adjust.", False),
    (15, "execution", "Details tend to slip through the cracks when I'm busy.", True),
    (16, "execution", "I can keep several workstreams moving at once without dropping any.", False),
    (17, "hustle", "I'm comfortable reaching out to strangers to get something done.", False),
    (18, "hustle", "I keep pushing when early attempts are rejected.", False),
    (19, "hustle", "I find creative ways to get resources when budgets are tight.", False),
    (20, "hustle", "I wait for the right conditions before taking on an ambitious goal.", True),
    (21, "hustle", "I enjoy the pace of environments where everything is urgent.", False),
    (22, "hustle", "I put in extra effort during crunch periods without being asked.", False),
    (23, "hustle", "Cold outreach makes me uncomfortable enough that I avoid it.", True),
    (24, "hustle", "I actively look for opportunities others have overlooked.", False),
    (25, "problemSolving", "I enjoy untangling messy problems that have no obvious answer.", False),
    (26, "problemSolving", "I look for root causes instead of treating symptoms.", False),
    (27, "problemSolving", "I use data to test my assumptions before deciding.", False),
    (28, "problemSolving", "When a problem gets complicated, I prefer to hand it off.", True),
    (29, "problemSolving", "I can structure an ambiguous question into smaller solvable parts.", False),
    (30, "problemSolving", "I'm comfortable making a decision with incomplete information.", False),
    (31, "leadership", "People naturally look to me for direction in group settings.", False),
    (32, "leadership", "I give teammates candid feedback even when it is uncomfortable.", False),
    (33, "leadership", "I can rally a team around a goal they didn't initially agree with.", False),
    (34, "leadership", "I'd rather do the work myself than coordinate others.", True),
    (35, "leadership", "I take responsibility for developing the people I work with.", False),
    (36, "leadership", "I stay calm and decisive when the team is under pressure.", False),
    (37, "trap", "I have never missed a deadline in my life.", False),
    (38, "trap", "I have never felt frustrated with a teammate.", False),
    (39, "trap", "I am always the hardest-working person in any group.", False),
    (40, "trap", "I have never made a decision I later regretted.", False),
    (41, "mixed", "I prefer clear checklists when running a project.", False),
    (42, "mixed", "I move fast and fix things as I go.", False),
    (43, "mixed", "I enjoy coaching others through tough problems.", False),
    (44, "mixed", "I'm comfortable being the one who makes the final call.", False),
    (45, "mixed", "I'd take on a role nobody wants if it moves the venture forward.", False),
    (46, "mixed", "I like turning repeated work into a documented process.", False),
    (47, "mixed", "I keep meetings focused on decisions and next steps.", False),
    (48, "mixed", "I get energy from chasing new leads and partnerships.", False),
    (49, "mixed", "I plan my week before it starts.", False),
    (50, "mixed", "I close loops quickly on open questions and requests.", False),
    (51, "ventureFit", "I'm at my best building the systems that keep a business running.", False),
    (52, "ventureFit", "I enjoy managing day-to-day operations and logistics.", False),
    (53, "ventureFit", "I'd rather run a tight operation than pitch a big idea.", False),
    (54, "ventureFit", "I love figuring out what users actually need.", False),
    (55, "ventureFit", "I enjoy designing and iterating on products.", False),
    (56, "ventureFit", "I often sketch product improvements in my head.", False),
    (57, "ventureFit", "I enjoy selling an idea to customers or partners.", False),
    (58, "ventureFit", "Building relationships and networks energizes me.", False),
    (59, "ventureFit", "I'm motivated by hitting growth and revenue targets.", False),
    (60, "ventureFit", "I think in terms of long-term missions and where a market is going.", False),
]

# (number, text, ((option text, mapping), ...))
_FORCED_CHOICE_ITEMS: list[tuple[int, str, tuple[tuple[str, dict[str, float]], ...]]] = [
    (61, "When facing a new initiative, I tend to:", (
        ("Start moving and learn as I go", {"action_bias": 1}),
        ("Research thoroughly before acting", {"deliberation_bias": 1}),
    )),
    (62, "I do my best work:", (
        ("Independently, with clear ownership", {"autonomy": 1}),
        ("Alongside a close-knit team", {"collaboration": 1}),
    )),
    (63, "When giving feedback, I'm usually:", (
        ("Direct and to the point", {"direct": 1}),
        ("Tactful and considerate of how it lands", {"diplomatic": 1}),
    )),
    (64, "I'm more drawn to:", (
        ("Defining where we should be in five years", {"vision_focus": 1}),
        ("Making sure this quarter's plan gets delivered", {"execution_focus": 1}),
    )),
    (65, "When a decision is stuck in the team, I:", (
        ("Make the call and move on", {"action_bias": 1, "direct": 1}),
        ("Bring people together to align first", {"collaboration": 1, "diplomatic": 1}),
    )),
]

_SCENARIO_ITEMS: list[tuple[int, str, tuple[tuple[str, dict[str, float]], ...]]] = [
    (66, "A key supplier misses a delivery two days before launch. You:", (
        ("Call the supplier immediately and negotiate an emergency fix", {"ownership": 1, "hustle": 1}),
        ("Re-plan the launch timeline and communicate it to stakeholders", {"execution": 1, "communication": 1}),
        ("Gather the team to brainstorm alternatives together", {"collaboration": 1, "problem_solving": 1}),
        ("Escalate to your manager and wait for direction", {"ownership": -1}),
    )),
    (67, "Two teammates disagree sharply on product direction. You:", (
        ("Set up a structured discussion with data from both sides", {"problem_solving": 1, "communication": 1}),
        ("Make the call yourself based on the venture's goals", {"leadership": 1}),
        ("Let them work it out between themselves", {"leadership": -1}),
        ("Ask them to pair on a quick experiment to test both views", {"collaboration": 1, "execution": 1}),
    )),
    (68, "Sales are 30% below target halfway through the quarter. You:", (
        ("Personally take on extra outreach to close the gap", {"hustle": 2}),
        ("Analyze the funnel to find where deals are dropping", {"problem_solving": 2}),
        ("Ask leadership to reset the targets", {"execution": -1}),
        ("Rally the team around a focused two-week push", {"leadership": 1, "communication": 1}),
    )),
    (69, "You inherit a messy process that nobody owns. You:", (
        ("Document it and assign clear owners", {"execution": 1, "ownership": 1}),
        ("Redesign it from first principles", {"problem_solving": 1}),
        ("Leave it until it causes a real problem", {"ownership": -1}),
        ("Workshop improvements with the people who use it", {"collaboration": 1}),
    )),
    (70, "A new hire is struggling to keep up. You:", (
        ("Schedule regular check-ins and coach them directly", {"leadership": 1, "communication": 1}),
        ("Pair them with a strong teammate", {"collaboration": 1}),
        ("Give them clearer written instructions", {"execution": 1}),
        ("Raise it with their manager", {}),
    )),
]


def _choice_question(number: int, text: str, dimension: str, qtype: str,
                     choices: tuple[tuple[str, dict[str, float]], ...]) -> Question:
    q = Question(
        id=number, number=number, text=text, dimension=dimension, type=qtype,
        options=tuple(label for label, _ in choices),
    )
    mappings = {key: dict(mapping) for key, (_, mapping) in zip(q.option_keys(), choices) if mapping}
    return replace(q, option_mappings=mappings)


def default_catalog() -> list[Question]:
    """The shipped 70-question catalog, ordered by number. ``id`` equals ``number``."""
    questions = [
        Question(id=n, number=n, text=text, dimension=dim, is_reverse=rev, is_trap=(dim == "trap"))
        for n, dim, text, rev in _LIKERT_ITEMS
    ]
    questions += [_choice_question(n, t, "style", FORCED_CHOICE, c) for n, t, c in _FORCED_CHOICE_ITEMS]
    questions += [_choice_question(n, t, "scenario", SCENARIO, c) for n, t, c in _SCENARIO_ITEMS]
    return sorted(questions, key=lambda q: q.number)
