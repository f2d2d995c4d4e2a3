"""
Progression Catalog

Static tree of progression nodes, grouped into branches. A node is cleared
by logging `target_sessions` completed workouts that contain one of its
exercise keywords; it opens up once all of its prerequisites are cleared.

The catalog is validated at import so a bad edit fails loudly at startup
rather than producing a tree nobody can finish.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple


class CatalogError(ValueError):
    """The static progression catalog is inconsistent."""


@dataclass(frozen=True)
class TemplateExercise:
    name: str
    target_sets: int
    target_reps: str
    target_type: str = "reps"  # reps | time


@dataclass(frozen=True)
class ProgressionTemplate:
    slug: str
    name: str
    description: str
    category: str
    difficulty: str  # beginner | intermediate | advanced
    estimated_duration: int  # minutes
    focus: str
    exercises: Tuple[TemplateExercise, ...]


@dataclass(frozen=True)
class ProgressionNode:
    id: str
    name: str
    tier: int
    xp: int
    focus: str
    description: str
    reward: str
    target_sessions: int
    prerequisites: Tuple[str, ...]
    exercise_keywords: Tuple[str, ...]
    template: ProgressionTemplate


@dataclass(frozen=True)
class ProgressionBranch:
    id: str
    title: str
    subtitle: str
    description: str
    milestones: Tuple[ProgressionNode, ...]

    @property
    def top_tier(self) -> int:
        return max((node.tier for node in self.milestones), default=0)


def _t(name: str, sets: int, reps: str, target_type: str = "reps") -> TemplateExercise:
    return TemplateExercise(name=name, target_sets=sets, target_reps=reps, target_type=target_type)


PUSH_BRANCH = ProgressionBranch(
    id="push",
    title="Push Power",
    subtitle="Chest, shoulders, triceps",
    description="From the first clean push-up to a heavy overhead press.",
    milestones=(
        ProgressionNode(
            id="push-foundations",
            name="Push Foundations",
            tier=0,
            xp=100,
            focus="chest",
            description="Groove the push-up and a light bench pattern.",
            reward="Foundation badge",
            target_sessions=3,
            prerequisites=(),
            exercise_keywords=("push-up", "push up", "bench press"),
            template=ProgressionTemplate(
                slug="push-foundations",
                name="Push Foundations",
                description="Bodyweight and light barbell pressing.",
                category="strength",
                difficulty="beginner",
                estimated_duration=35,
                focus="chest",
                exercises=(_t("Push-up", 3, "8-12"), _t("Bench Press", 3, "8-10"), _t("Triceps Dip", 2, "6-10")),
            ),
        ),
        ProgressionNode(
            id="push-overhead",
            name="Overhead Control",
            tier=1,
            xp=200,
            focus="shoulders",
            description="Build stable shoulders with strict pressing.",
            reward="Overhead badge",
            target_sessions=4,
            prerequisites=("push-foundations",),
            exercise_keywords=("overhead press", "shoulder press", "military press"),
            template=ProgressionTemplate(
                slug="push-overhead",
                name="Overhead Control",
                description="Strict pressing with shoulder accessories.",
                category="strength",
                difficulty="intermediate",
                estimated_duration=45,
                focus="shoulders",
                exercises=(_t("Overhead Press", 4, "5-8"), _t("Lateral Raise", 3, "12-15"), _t("Push-up", 2, "AMRAP")),
            ),
        ),
        ProgressionNode(
            id="push-heavy",
            name="Heavy Press",
            tier=2,
            xp=400,
            focus="chest",
            description="Low-rep bench and incline work.",
            reward="Push crown",
            target_sessions=6,
            prerequisites=("push-overhead",),
            exercise_keywords=("incline press", "incline bench", "close-grip bench"),
            template=ProgressionTemplate(
                slug="push-heavy",
                name="Heavy Press",
                description="Heavy pressing day.",
                category="strength",
                difficulty="advanced",
                estimated_duration=60,
                focus="chest",
                exercises=(_t("Bench Press", 5, "3-5"), _t("Incline Press", 4, "6-8"), _t("Close-Grip Bench", 3, "6-8")),
            ),
        ),
    ),
)


PULL_BRANCH = ProgressionBranch(
    id="pull",
    title="Pull Strength",
    subtitle="Back, biceps, grip",
    description="Rows first, then the pull-up, then the weighted pull-up.",
    milestones=(
        ProgressionNode(
            id="pull-foundations",
            name="Row Basics",
            tier=0,
            xp=100,
            focus="upper back",
            description="Learn to brace and row.",
            reward="Foundation badge",
            target_sessions=3,
            prerequisites=(),
            exercise_keywords=("row",),
            template=ProgressionTemplate(
                slug="pull-foundations",
                name="Row Basics",
                description="Horizontal pulling volume.",
                category="strength",
                difficulty="beginner",
                estimated_duration=35,
                focus="upper back",
                exercises=(_t("Dumbbell Row", 3, "10-12"), _t("Inverted Row", 3, "8-10"), _t("Biceps Curl", 2, "12")),
            ),
        ),
        ProgressionNode(
            id="pull-vertical",
            name="First Pull-up",
            tier=1,
            xp=250,
            focus="back",
            description="Lat pulldowns and assisted pull-ups until the first strict rep.",
            reward="Pull-up badge",
            target_sessions=5,
            prerequisites=("pull-foundations",),
            exercise_keywords=("pull-up", "pull up", "chin-up", "chin up", "pulldown"),
            template=ProgressionTemplate(
                slug="pull-vertical",
                name="First Pull-up",
                description="Vertical pulling progression.",
                category="strength",
                difficulty="intermediate",
                estimated_duration=40,
                focus="back",
                exercises=(_t("Lat Pulldown", 4, "8-10"), _t("Assisted Pull-up", 3, "5-8"), _t("Dead Hang", 3, "30s", "time")),
            ),
        ),
        ProgressionNode(
            id="pull-weighted",
            name="Weighted Pull",
            tier=2,
            xp=400,
            focus="back",
            description="Add load to the pull-up and the deadlift.",
            reward="Pull crown",
            target_sessions=6,
            prerequisites=("pull-vertical", "legs-hinge"),
            exercise_keywords=("weighted pull-up", "weighted chin-up", "deadlift"),
            template=ProgressionTemplate(
                slug="pull-weighted",
                name="Weighted Pull",
                description="Heavy pulling.",
                category="strength",
                difficulty="advanced",
                estimated_duration=60,
                focus="back",
                exercises=(_t("Weighted Pull-up", 5, "3-5"), _t("Deadlift", 3, "3-5"), _t("Barbell Row", 3, "6-8")),
            ),
        ),
    ),
)


LEGS_BRANCH = ProgressionBranch(
    id="legs",
    title="Leg Day",
    subtitle="Quads, hamstrings, glutes",
    description="Squat, hinge, then single-leg strength.",
    milestones=(
        ProgressionNode(
            id="legs-squat",
            name="Squat Pattern",
            tier=0,
            xp=100,
            focus="quadriceps",
            description="Goblet and bodyweight squats to depth.",
            reward="Foundation badge",
            target_sessions=3,
            prerequisites=(),
            exercise_keywords=("squat",),
            template=ProgressionTemplate(
                slug="legs-squat",
                name="Squat Pattern",
                description="Squat technique and volume.",
                category="strength",
                difficulty="beginner",
                estimated_duration=35,
                focus="quadriceps",
                exercises=(_t("Goblet Squat", 3, "10-12"), _t("Bodyweight Squat", 2, "15"), _t("Calf Raise", 3, "15")),
            ),
        ),
        ProgressionNode(
            id="legs-hinge",
            name="Hip Hinge",
            tier=1,
            xp=200,
            focus="hamstrings",
            description="Romanian deadlifts and hip thrusts.",
            reward="Hinge badge",
            target_sessions=4,
            prerequisites=("legs-squat",),
            exercise_keywords=("romanian deadlift", "rdl", "hip thrust", "good morning"),
            template=ProgressionTemplate(
                slug="legs-hinge",
                name="Hip Hinge",
                description="Posterior chain day.",
                category="strength",
                difficulty="intermediate",
                estimated_duration=45,
                focus="hamstrings",
                exercises=(_t("Romanian Deadlift", 4, "8"), _t("Hip Thrust", 3, "10"), _t("Leg Curl", 3, "12")),
            ),
        ),
        ProgressionNode(
            id="legs-unilateral",
            name="Single-Leg Strength",
            tier=2,
            xp=400,
            focus="legs",
            description="Split squats and lunges under load.",
            reward="Legs crown",
            target_sessions=6,
            prerequisites=("legs-hinge",),
            exercise_keywords=("split squat", "lunge", "step-up", "pistol"),
            template=ProgressionTemplate(
                slug="legs-unilateral",
                name="Single-Leg Strength",
                description="Unilateral leg work.",
                category="strength",
                difficulty="advanced",
                estimated_duration=55,
                focus="legs",
                exercises=(_t("Bulgarian Split Squat", 4, "8"), _t("Walking Lunge", 3, "12"), _t("Step-up", 3, "10")),
            ),
        ),
    ),
)


CORE_BRANCH = ProgressionBranch(
    id="core",
    title="Iron Core",
    subtitle="Abs, obliques, lower back",
    description="Anti-extension, anti-rotation, then hanging work.",
    milestones=(
        ProgressionNode(
            id="core-stability",
            name="Stability",
            tier=0,
            xp=80,
            focus="core",
            description="Planks and dead bugs.",
            reward="Foundation badge",
            target_sessions=3,
            prerequisites=(),
            exercise_keywords=("plank", "dead bug", "bird dog"),
            template=ProgressionTemplate(
                slug="core-stability",
                name="Stability",
                description="Core bracing basics.",
                category="core",
                difficulty="beginner",
                estimated_duration=20,
                focus="core",
                exercises=(_t("Plank", 3, "45s", "time"), _t("Dead Bug", 3, "10"), _t("Bird Dog", 2, "10")),
            ),
        ),
        ProgressionNode(
            id="core-hanging",
            name="Hanging Core",
            tier=1,
            xp=300,
            focus="abs",
            description="Hanging knee and leg raises.",
            reward="Core crown",
            target_sessions=5,
            prerequisites=("core-stability", "pull-foundations"),
            exercise_keywords=("hanging leg raise", "hanging knee raise", "toes to bar"),
            template=ProgressionTemplate(
                slug="core-hanging",
                name="Hanging Core",
                description="Hanging abdominal work.",
                category="core",
                difficulty="intermediate",
                estimated_duration=25,
                focus="abs",
                exercises=(_t("Hanging Knee Raise", 3, "10"), _t("Hanging Leg Raise", 3, "8"), _t("Side Plank", 2, "30s", "time")),
            ),
        ),
    ),
)


def validate_catalog(branches: Iterable[ProgressionBranch]) -> Dict[str, ProgressionNode]:
    """
    Check the catalog invariants and return nodes keyed by id.

    Raises CatalogError on duplicate ids, unknown prerequisites, a
    prerequisite on a higher tier, non-positive xp/target, or a cycle.
    """
    nodes: Dict[str, ProgressionNode] = {}
    for branch in branches:
        for node in branch.milestones:
            if node.id in nodes:
                raise CatalogError(f"Duplicate progression node id: {node.id}")
            if node.tier < 0:
                raise CatalogError(f"Node {node.id} has a negative tier")
            if node.xp <= 0 or node.target_sessions <= 0:
                raise CatalogError(f"Node {node.id} must have positive xp and target_sessions")
            nodes[node.id] = node

    for node in nodes.values():
        for prereq_id in node.prerequisites:
            prereq = nodes.get(prereq_id)
            if prereq is None:
                raise CatalogError(f"Node {node.id} requires unknown node {prereq_id}")
            if prereq.tier > node.tier:
                raise CatalogError(f"Node {node.id} (tier {node.tier}) requires higher-tier node {prereq_id}")

    # Cycle check (equal-tier prerequisites could still loop)
    visiting, done = set(), set()

    def _visit(node_id: str, path: List[str]) -> None:
        if node_id in done:
            return
        if node_id in visiting:
            raise CatalogError("Prerequisite cycle: " + " -> ".join(path + [node_id]))
        visiting.add(node_id)
        for prereq_id in nodes[node_id].prerequisites:
            _visit(prereq_id, path + [node_id])
        visiting.discard(node_id)
        done.add(node_id)

    for node_id in nodes:
        _visit(node_id, [])

    return nodes


PROGRESSION_BRANCHES: Tuple[ProgressionBranch, ...] = (PUSH_BRANCH, PULL_BRANCH, LEGS_BRANCH, CORE_BRANCH)

NODES_BY_ID: Mapping[str, ProgressionNode] = MappingProxyType(validate_catalog(PROGRESSION_BRANCHES))

BRANCH_BY_NODE_ID: Mapping[str, ProgressionBranch] = MappingProxyType({
    node.id: branch for branch in PROGRESSION_BRANCHES for node in branch.milestones
})
