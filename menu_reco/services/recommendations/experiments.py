"""
Experiment assignment for A/B/C testing
"""
from menu_reco.services.recommendations.models import ExperimentGroup

EXPERIMENT_GROUPS = (ExperimentGroup.A, ExperimentGroup.B, ExperimentGroup.C)


def session_hash(session_id: str) -> int:
    """
    32-bit signed rolling hash (h = h * 31 + unit) over UTF-16 code units

    Stable across processes and matches the bucketing already recorded
    by the web client, so running experiments keep their assignment.
    """
    data = session_id.encode("utf-16-le")
    value = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def assign_experiment_group(session_id: str) -> ExperimentGroup:
    """Deterministically bucket a session into one of the experiment groups"""
    bucket = abs(session_hash(session_id)) % len(EXPERIMENT_GROUPS)
    return EXPERIMENT_GROUPS[bucket]
