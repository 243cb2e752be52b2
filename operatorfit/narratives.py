"""Narrative text tables keyed by operator type.

Only the text lives here; ``scoring`` decides which entries apply.
"""
from __future__ import annotations

OPERATIONAL_LEADER = "Operational Leader"
PRODUCT_ARCHITECT = "Product Architect"
GROWTH_CATALYST = "Growth Catalyst"
VISIONARY_BUILDER = "Visionary Builder"

OPERATOR_TYPES = (OPERATIONAL_LEADER, PRODUCT_ARCHITECT, GROWTH_CATALYST, VISIONARY_BUILDER)

SUMMARIES = {
    OPERATIONAL_LEADER: (
        "{name} shows a {readiness} operator profile with a strong bias toward Operational Leader traits. "
        "They are most energized by building structure, managing complexity, and ensuring that plans "
        "actually get executed. This profile is well-suited to operationally intensive ventures where "
        "reliability, process, and follow-through are critical."
    ),
    PRODUCT_ARCHITECT: (
        "{name} presents a {readiness} operator profile with a dominant Product Architect orientation. "
        "They are naturally drawn to understanding users, mapping journeys, and turning insights into "
        "concrete product decisions. This makes them a strong fit for product-led ventures where "
        "differentiation comes from what is built and how it feels to use it."
    ),
    GROWTH_CATALYST: (
        "{name} has a {readiness} operator profile with a strong Growth Catalyst orientation. They are "
        "energized by talking to people, pitching ideas, building relationships, and getting traction. "
        "This profile is ideal for go-to-market heavy ventures that depend on sales, partnerships, and "
        "community to grow."
    ),
    VISIONARY_BUILDER: (
        "{name} shows a {readiness} operator profile with a strong Visionary Builder orientation. They "
        "think in missions, long-term direction, and the bigger story of what the venture could become. "
        "This profile is powerful for category-creating or long-horizon ventures where narrative, "
        "alignment, and ambition matter."
    ),
}

HYBRID_SUMMARY = (
    "{name} shows a {readiness} operator profile as an {primary} with {secondary} tendencies. "
    "They combine their primary strengths with secondary capabilities in {focus}, making them "
    "especially valuable in ventures that need both stable core execution and {focus}-style contribution."
)

# primary -> secondary -> capability the secondary type adds
HYBRID_FOCUS = {
    OPERATIONAL_LEADER: {
        PRODUCT_ARCHITECT: "product thinking",
        GROWTH_CATALYST: "sales and storytelling",
        VISIONARY_BUILDER: "strategic vision",
    },
    PRODUCT_ARCHITECT: {
        OPERATIONAL_LEADER: "execution discipline",
        GROWTH_CATALYST: "growth and distribution",
        VISIONARY_BUILDER: "long-term vision",
    },
    GROWTH_CATALYST: {
        OPERATIONAL_LEADER: "operational excellence",
        PRODUCT_ARCHITECT: "product thinking",
        VISIONARY_BUILDER: "strategic direction",
    },
    VISIONARY_BUILDER: {
        OPERATIONAL_LEADER: "operational grounding",
        PRODUCT_ARCHITECT: "product expertise",
        GROWTH_CATALYST: "growth execution",
    },
}

TRAP_NOTE = (
    " [Note: High social desirability score detected ({score}/20). Self-reported strengths "
    "may be overstated; validate key claims in interview.]"
)

STRENGTHS = {
    OPERATIONAL_LEADER: (
        "High ownership and follow-through",
        "Strong bias for action and detail orientation",
        "Good at turning chaos into repeatable processes",
        "Reliable executor under pressure",
        "Naturally brings order to teams and projects",
    ),
    PRODUCT_ARCHITECT: (
        "Strong empathy for users and customer problems",
        "Thinks in features, flows, and product trade-offs",
        "Enjoys prototyping and iterating on MVPs",
        "Good at translating messy needs into clear product specs",
        "Often spots UX issues and friction before others",
    ),
    GROWTH_CATALYST: (
        "Strong communication and storytelling",
        "Comfortable with outreach, networking, and cold conversations",
        "Good at spotting opportunities and alliances",
        "Brings energy and momentum to the team",
        "Pushes the product in front of real users early",
    ),
    VISIONARY_BUILDER: (
        "Strong long-term vision and narrative",
        "Can rally people around a mission or cause",
        "Good at setting direction and high-level priorities",
        "Thinks in systems, markets, and multi-year outcomes",
        'Often acts as the "face" or storyteller of the venture',
    ),
}

WEAKNESSES = {
    OPERATIONAL_LEADER: (
        "May over-focus on internal process vs external opportunity",
        "Can be less comfortable with big unstructured vision work",
        'Might delay bold bets in favor of "what\'s proven"',
        "Risk of micromanaging if trust and delegation are underdeveloped",
    ),
    PRODUCT_ARCHITECT: (
        "May spend too long refining product vs pushing it to market",
        "Can underinvest in sales, growth, and distribution early on",
        'Risk of over-indexing on "nice to have" vs core value',
        "Might struggle in heavily operations-led environments",
    ),
    GROWTH_CATALYST: (
        "May under-focus on underlying systems, operations, or technical depth",
        "Risk of overselling relative to current product reality",
        'Might move on to "the next opportunity" too quickly',
        "Can become frustrated with slower, detail-heavy work",
    ),
    VISIONARY_BUILDER: (
        "May underinvest in details, systems, and operational reality",
        'Risk of "vision drift" without enough grounding in feedback',
        "Can move on mentally before the team has caught up",
        "Might struggle to translate big ideas into concrete next steps",
    ),
}

WEAKNESS_SUMMARIES = {
    OPERATIONAL_LEADER: (
        "The main development areas for this profile include making time for bigger-picture thinking, "
        "avoiding over-optimization of processes too early, and practicing delegation so they don't become "
        "a bottleneck. Supporting {name} with a strong product or vision co-operator can unlock even more "
        "leverage."
    ),
    PRODUCT_ARCHITECT: (
        "Key growth areas include balancing product craft with commercial urgency, staying close to sales "
        "and adoption metrics, and making sure they ship fast enough to learn from the market. Pairing "
        "{name} with a Growth Catalyst or Operational Leader can create a well-rounded team."
    ),
    GROWTH_CATALYST: (
        "{name} may benefit from strengthening execution discipline, staying tightly aligned with product "
        "and operations, and ensuring promises closely match reality. Partnering them with an Operational "
        "Leader or Product Architect helps turn generated demand into durable value."
    ),
    VISIONARY_BUILDER: (
        "Development areas often include grounding the vision in near-term execution, staying close to "
        "operational and product realities, and building mechanisms for feedback and iteration. "
        "Surrounding {name} with strong operators and product thinkers helps translate their vision into "
        "consistent progress."
    ),
}

TRAIT_LABELS = {
    "ownership": "Ownership",
    "execution": "Execution",
    "hustle": "Hustle",
    "problemSolving": "Problem-Solving",
    "leadership": "Leadership",
}


def summary_for(name: str, primary: str, secondary: str | None, confidence: str,
                trap_score: float, trap_flagged: bool) -> str:
    readiness = "Exceptional" if confidence == "Strong" else confidence
    focus = HYBRID_FOCUS.get(primary, {}).get(secondary) if secondary else None
    if focus:
        text = HYBRID_SUMMARY.format(
            name=name, readiness=readiness, primary=primary, secondary=secondary, focus=focus,
        )
    else:
        text = SUMMARIES[primary].format(name=name, readiness=readiness)
    if trap_flagged:
        text += TRAP_NOTE.format(score=f"{trap_score:g}")
    return text


def weakness_summary_for(name: str, primary: str) -> str:
    return WEAKNESS_SUMMARIES[primary].format(name=name)
