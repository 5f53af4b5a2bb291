"""
Supported posture catalog: the 34 classical Pilates mat exercises.

Reference: Joseph Pilates, "Return to Life Through Contrology" (1945).
A posture listed here but absent from the reference library can still be
labelled; the evaluator then returns a placeholder score and asks for a
reference capture.
"""

from typing import Optional

# id -> (name, description, benefits)
SUPPORTED_POSTURES: dict[str, tuple[str, str, list[str]]] = {
    "the_hundred": (
        "The Hundred",
        "Signature warm-up: pump arms while holding a crunch with legs elevated.",
        ["Core stamina", "Cardio effect", "Circulation"],
    ),
    "roll_up": (
        "Roll-Up",
        "Full body articulation rolling up from supine to seated forward fold.",
        ["Spinal flexibility", "Abdominal strength", "Hamstring stretch"],
    ),
    "roll_over": (
        "Roll Over",
        "Legs sweep overhead from supine, articulating the spine.",
        ["Spinal mobility", "Abdominal control", "Hamstring flexibility"],
    ),
    "one_leg_circle": (
        "One-Leg Circle",
        "One leg draws circles while pelvis stays stable.",
        ["Hip range of motion", "Pelvic stability", "Abdominal control"],
    ),
    "rolling_like_a_ball": (
        "Rolling Like a Ball",
        "Tucked ball shape, rolling back and up on the spine.",
        ["Balance", "Spinal massage", "Core control"],
    ),
    "one_leg_stretch": (
        "One-Leg Stretch",
        "Alternate pulling one knee to chest while extending the other.",
        ["Core stability", "Hip flexor strength", "Coordination"],
    ),
    "double_leg_stretch": (
        "Double-Leg Stretch",
        "Both arms and legs extend away from center then return.",
        ["Core power", "Full body coordination", "Breath control"],
    ),
    "spine_stretch": (
        "Spine Stretch",
        "Seated tall, reach forward articulating through the spine.",
        ["Spinal articulation", "Hamstring stretch", "Posture awareness"],
    ),
    "open_leg_rocker": (
        "Open-Leg Rocker",
        "Balance on sit bones with legs open and straight, rock back and up.",
        ["Balance", "Hamstring flexibility", "Core control"],
    ),
    "corkscrew": (
        "Corkscrew",
        "Both legs circle together while core stabilizes the pelvis.",
        ["Core control", "Spinal mobility", "Precision"],
    ),
    "the_saw": (
        "The Saw",
        "Seated wide, twist and reach opposite hand to foot.",
        ["Rotation", "Hamstring flexibility", "Breath coordination"],
    ),
    "swan_dive": (
        "Swan Dive",
        "Prone back extension with chest lifting off mat, rocking forward and back.",
        ["Back extension", "Shoulder opening", "Glute strength"],
    ),
    "one_leg_kick": (
        "One-Leg Kick",
        "Prone on forearms, kick one heel toward glute twice then switch.",
        ["Hamstring strength", "Glute activation", "Core stability"],
    ),
    "double_leg_kick": (
        "Double-Leg Kick",
        "Prone with hands clasped behind back, kick both heels then extend.",
        ["Posterior chain", "Coordination", "Back extension"],
    ),
    "neck_pull": (
        "Neck Pull",
        "Roll up and down with hands interlaced behind head.",
        ["Spinal articulation", "Abdominal strength", "Neck alignment"],
    ),
    "scissors": (
        "Scissors",
        "Legs split vertically like scissors while maintaining shoulder support.",
        ["Hip flexibility", "Core stability", "Leg extension"],
    ),
    "bicycle": (
        "Bicycle",
        "Legs pedaling in the air while core supports the lower back.",
        ["Range of motion", "Coordination", "Core stability"],
    ),
    "shoulder_bridge": (
        "Shoulder Bridge",
        "Hips lifted creating a straight line from shoulders to knees.",
        ["Glute strength", "Hamstring activation", "Core control"],
    ),
    "spine_twist": (
        "Spine Twist",
        "Seated tall with legs straight, twist torso side to side.",
        ["Spinal mobility", "Oblique strength", "Posture"],
    ),
    "jackknife": (
        "Jackknife",
        "Legs lift overhead then shoot straight up toward the ceiling.",
        ["Abdominal power", "Spinal articulation", "Control"],
    ),
    "side_kick": (
        "Side Kick",
        "Lying on side, top leg kicks forward and back with control.",
        ["Lateral stability", "Hip mobility", "Core control"],
    ),
    "teaser": (
        "Teaser",
        "Balance on sit bones in a V-shape with arms and legs elevated.",
        ["Core strength", "Balance", "Full body control"],
    ),
    "hip_twist": (
        "Hip Twist",
        "Seated on hands, circle extended legs for hip and core work.",
        ["Core control", "Hip mobility", "Shoulder stability"],
    ),
    "swimming": (
        "Swimming",
        "Prone flutter of alternate arms and legs like swimming.",
        ["Back extension", "Glute activation", "Coordination"],
    ),
    "leg_pull_front": (
        "Leg Pull Front",
        "Plank position, lift one leg while maintaining alignment.",
        ["Plank strength", "Core stability", "Shoulder endurance"],
    ),
    "leg_pull_back": (
        "Leg Pull Back",
        "Reverse plank, lift one leg while keeping hips level.",
        ["Triceps strength", "Glute activation", "Core control"],
    ),
    "kneeling_side_kick": (
        "Kneeling Side Kick",
        "Kneeling on one knee, extend and kick the other leg sideways.",
        ["Balance", "Lateral strength", "Hip mobility"],
    ),
    "side_bend": (
        "Side Bend",
        "Side support lifting hips into an arc with top arm reaching.",
        ["Lateral strength", "Shoulder stability", "Core control"],
    ),
    "boomerang": (
        "Boomerang",
        "Complex flow combining roll back, leg extension, and balance.",
        ["Flow", "Full body coordination", "Core control"],
    ),
    "seal": (
        "Seal",
        "Seated tuck roll with foot claps, massaging the spine.",
        ["Spinal massage", "Core activation", "Playfulness"],
    ),
    "crab": (
        "Crab",
        "Cross-legged rolling back and forth, massaging the spine.",
        ["Spinal massage", "Balance", "Coordination"],
    ),
    "rocking": (
        "Rocking",
        "Prone bow shape holding ankles, rocking forward and back.",
        ["Back extension", "Quad stretch", "Hip flexor opening"],
    ),
    "control_balance": (
        "Control Balance",
        "Legs overhead, one leg reaches up while maintaining balance.",
        ["Balance", "Core stability", "Full body control"],
    ),
    "push_up": (
        "Push-Up",
        "Pilates push-up: walk hands out from standing to plank, perform push-ups, walk back.",
        ["Chest strength", "Core stability", "Shoulder endurance"],
    ),
}

_NAME_TO_ID: dict[str, str] = {name: pid for pid, (name, _, _) in SUPPORTED_POSTURES.items()}


def list_supported_postures() -> list[dict]:
    """All supported postures as ``{id, name, description, benefits}`` dicts."""
    return [
        {"id": pid, "name": name, "description": desc, "benefits": list(benefits)}
        for pid, (name, desc, benefits) in SUPPORTED_POSTURES.items()
    ]


def get_posture(key: str) -> Optional[dict]:
    """Look up a posture by id (``"the_hundred"``) or name (``"The Hundred"``)."""
    pid = key if key in SUPPORTED_POSTURES else _NAME_TO_ID.get(key)
    if pid is None:
        return None
    name, desc, benefits = SUPPORTED_POSTURES[pid]
    return {"id": pid, "name": name, "description": desc, "benefits": list(benefits)}


def is_supported_posture(name: str) -> bool:
    return name in _NAME_TO_ID
