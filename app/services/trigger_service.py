"""Trigger analysis: which ingredients go with higher symptom severity."""
import logging
import math
from datetime import date
from statistics import NormalDist, fmean, stdev
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from scipy.stats import t as t_dist
from sqlalchemy.orm import Session

from app.config import settings
from app.models import Ingredient, Log, LogIngredient, LogSymptom, Symptom


class TriggerAnalysisService:
    """
    Score each ingredient by how far symptom severity rises on the logs that contain it.

    Statistics are computed per log. A log's severity is the mean of its
    symptom severities, 0 when no symptom was recorded. For every ingredient:

        d     = mean severity on logs with the ingredient - mean severity on all logs
        score = d / stdev(severity on all logs)
        CI    = d +/- q * stdev(severity on logs with the ingredient) / sqrt(n)

    with q the Student t quantile on n - 1 degrees of freedom at the
    configured confidence level (the normal z for a single observation).
    Only ingredients with d > 0 that clear the sample-size thresholds are
    reported.
    """

    # Minimum data thresholds (loaded from central config)
    MIN_LOGS = settings.trigger_min_logs
    MIN_CONSUMPTION = settings.trigger_min_consumption
    CONFIDENCE_LEVEL = settings.trigger_confidence_level
    MAX_CI_WIDTH = settings.trigger_max_ci_width

    def __init__(
        self,
        db: Session,
        logger: Optional[logging.Logger] = None,
        min_logs: Optional[int] = None,
        min_consumption: Optional[int] = None,
        confidence_level: Optional[float] = None,
        max_ci_width: Optional[float] = None,
    ):
        self.db = db
        self.logger = logger or logging.getLogger(__name__)
        self.min_logs = self.MIN_LOGS if min_logs is None else min_logs
        self.min_consumption = (
            self.MIN_CONSUMPTION if min_consumption is None else min_consumption
        )
        self.confidence_level = (
            self.CONFIDENCE_LEVEL if confidence_level is None else confidence_level
        )
        self.max_ci_width = self.MAX_CI_WIDTH if max_ci_width is None else max_ci_width

        if not 0 < self.confidence_level < 1:
            raise ValueError("confidence_level must be between 0 and 1")

    # =========================================================================
    # Public API
    # =========================================================================

    def analyze(
        self,
        user_id: UUID,
        start_date: date,
        end_date: date,
        limit: int = 10,
        detailed: bool = False,
    ) -> Dict:
        """
        Run trigger analysis for one user over an inclusive date range.

        Args:
            user_id: Owner of the logs
            start_date: First day of the window
            end_date: Last day of the window
            limit: Maximum number of triggers to return
            detailed: Also return per-log correlation rows (capped at limit * 2)

        Returns:
            {
                "triggers": [...],
                "correlations": [...] or None,
                "total_logs": int,
                "meta": {...}
            }
        """
        if start_date > end_date:
            raise ValueError("start_date must be on or before end_date")
        if limit < 1:
            raise ValueError("limit must be positive")

        logs = self.load_snapshot(user_id, start_date, end_date)
        triggers = self.score_triggers(logs)[:limit]

        correlations = None
        if detailed:
            correlations = self.build_correlations(
                logs, [t["ingredient_id"] for t in triggers], limit * 2
            )

        self.logger.info(
            "Trigger analysis for user %s (%s..%s): %d logs, %d triggers",
            user_id,
            start_date,
            end_date,
            len(logs),
            len(triggers),
        )

        return {
            "triggers": triggers,
            "correlations": correlations,
            "total_logs": len(logs),
            "meta": {
                "date_range": {"start": start_date, "end": end_date},
                "total_logs": len(logs),
                "min_consumption_threshold": self.min_consumption,
                "min_logs_threshold": self.min_logs,
                "confidence_level": self.confidence_level,
            },
        }

    def load_snapshot(self, user_id: UUID, start_date: date, end_date: date) -> Dict:
        """
        Read every log in range with its ingredients and symptom severities.

        A single outer-joined SELECT keeps the consumption and baseline
        aggregates on the same snapshot of data.

        Returns:
            {log_id: {"log_date", "ingredients": {id: name}, "symptoms": {id: (name, severity)}}}
        """
        rows = (
            self.db.query(
                Log.id.label("log_id"),
                Log.log_date,
                LogIngredient.ingredient_id,
                Ingredient.name.label("ingredient_name"),
                LogSymptom.symptom_id,
                Symptom.name.label("symptom_name"),
                LogSymptom.severity,
            )
            .outerjoin(LogIngredient, LogIngredient.log_id == Log.id)
            .outerjoin(Ingredient, Ingredient.id == LogIngredient.ingredient_id)
            .outerjoin(LogSymptom, LogSymptom.log_id == Log.id)
            .outerjoin(Symptom, Symptom.id == LogSymptom.symptom_id)
            .filter(
                Log.user_id == user_id,
                Log.log_date >= start_date,
                Log.log_date <= end_date,
            )
            .all()
        )

        logs: Dict = {}
        for row in rows:
            entry = logs.setdefault(
                row.log_id,
                {"log_date": row.log_date, "ingredients": {}, "symptoms": {}},
            )
            if row.ingredient_id is not None:
                entry["ingredients"][row.ingredient_id] = row.ingredient_name
            if row.symptom_id is not None:
                entry["symptoms"][row.symptom_id] = (row.symptom_name, row.severity)
        return logs

    # =========================================================================
    # Scoring
    # =========================================================================

    @staticmethod
    def log_severity(log_entry: Dict) -> float:
        """Mean symptom severity of one log; 0 when nothing was felt."""
        severities = [severity for _name, severity in log_entry["symptoms"].values()]
        return fmean(severities) if severities else 0.0

    def score_triggers(self, logs: Dict) -> List[Dict]:
        """Score and rank every ingredient in the snapshot, applying all gates."""
        total_logs = len(logs)
        if total_logs == 0 or total_logs < self.min_logs:
            if total_logs:
                self.logger.debug(
                    "Skipping trigger scoring: %d logs < minimum %d",
                    total_logs,
                    self.min_logs,
                )
            return []

        severity_by_log = {log_id: self.log_severity(entry) for log_id, entry in logs.items()}
        all_severities = list(severity_by_log.values())
        baseline = fmean(all_severities)
        overall_sd = stdev(all_severities) if total_logs >= 2 else 0.0

        present: Dict[int, List[float]] = {}
        names: Dict[int, str] = {}
        for log_id, entry in logs.items():
            for ingredient_id, name in entry["ingredients"].items():
                present.setdefault(ingredient_id, []).append(severity_by_log[log_id])
                names[ingredient_id] = name

        triggers = []
        for ingredient_id, severities in present.items():
            consumption_count = len(severities)
            if consumption_count < self.min_consumption:
                continue

            avg_present = fmean(severities)
            difference = avg_present - baseline
            if difference <= 0:
                continue

            present_sd = stdev(severities) if consumption_count >= 2 else overall_sd
            lower, upper, width = self.calculate_confidence_interval(
                difference, present_sd, consumption_count, self.confidence_level
            )
            if self.max_ci_width is not None and width > self.max_ci_width:
                continue

            score = difference / overall_sd if overall_sd > 0 else 0.0

            triggers.append(
                {
                    "ingredient_id": ingredient_id,
                    "name": names[ingredient_id],
                    "consumption_count": consumption_count,
                    "avg_severity_when_present": round(avg_present, 3),
                    "baseline_avg_severity": round(baseline, 3),
                    "trigger_score": round(score, 3),
                    "confidence_interval": {
                        "lower": lower,
                        "upper": upper,
                        "width": width,
                    },
                }
            )

        # Highest score first; ties go to the more frequently eaten, then lowest id
        triggers.sort(
            key=lambda t: (-t["trigger_score"], -t["consumption_count"], t["ingredient_id"])
        )
        return triggers

    @staticmethod
    def calculate_confidence_interval(
        difference: float, sd: float, n: int, confidence_level: float
    ) -> Tuple[float, float, float]:
        """
        Student t interval around a mean difference.

        Small samples get the wider t quantile; with one observation there are
        no degrees of freedom left, so the normal quantile is used.

        Returns:
            (lower, upper, width) with lower and upper rounded to 3 decimals
            and width == round(upper - lower, 3)
        """
        if n < 1:
            return round(difference, 3), round(difference, 3), 0.0
        p = 0.5 + confidence_level / 2
        if n >= 2:
            quantile = float(t_dist.ppf(p, n - 1))
        else:
            quantile = NormalDist().inv_cdf(p)
        margin = quantile * sd / math.sqrt(n)
        lower = round(difference - margin, 3)
        upper = round(difference + margin, 3)
        return lower, upper, round(upper - lower, 3)

    # =========================================================================
    # Detailed view
    # =========================================================================

    @staticmethod
    def build_correlations(
        logs: Dict, ingredient_ids: List[int], max_rows: int
    ) -> List[Dict]:
        """
        Unaggregated (log, ingredient, symptom, severity) rows for the given ingredients.

        Newest log first, then by log id, ingredient id and symptom id.
        """
        wanted = set(ingredient_ids)
        rows = []
        for log_id, entry in logs.items():
            for ingredient_id, ingredient_name in entry["ingredients"].items():
                if ingredient_id not in wanted:
                    continue
                for symptom_id, (symptom_name, severity) in entry["symptoms"].items():
                    rows.append(
                        {
                            "log_id": log_id,
                            "log_date": entry["log_date"],
                            "ingredient_id": ingredient_id,
                            "ingredient_name": ingredient_name,
                            "symptom_id": symptom_id,
                            "symptom_name": symptom_name,
                            "severity": severity,
                        }
                    )

        rows.sort(
            key=lambda r: (
                -r["log_date"].toordinal(),
                str(r["log_id"]),
                r["ingredient_id"],
                r["symptom_id"],
            )
        )
        return rows[:max_rows]
