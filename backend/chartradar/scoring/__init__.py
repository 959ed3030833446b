"""
Scoring: normalize (chart entries -> artist metrics) and score
(artist metrics -> lead scores)
"""
from .metrics import compute_artist_metrics, refresh_artist_metrics, NormalizeResult
from .scorer import (
    SCORING_VERSION,
    Segment,
    ScoreInput,
    score_artist,
    refresh_lead_scores,
    ScoreResult,
)
