"""
services/mlflow_service.py
--------------------------
MLflow experiment tracking for LLM calls.

When MLFLOW_ENABLED is set, every LLM call is logged as a run inside the
"cloud-cost-assistant" experiment:
  - Parameters: call kind (chat / analysis / summary / relevance), model,
    user_id, mock flag
  - Metrics: latency in milliseconds, prompt and response sizes

View the MLflow UI:
  mlflow ui --port 5001
"""

from typing import Optional

from cost_assistant.core.config import settings
from cost_assistant.core.logging import get_logger

logger = get_logger(__name__)

EXPERIMENT_NAME = "cloud-cost-assistant"


def _get_mlflow():
    """
    Lazy import mlflow; it ships in the optional "tracking" extra.
    Returns the mlflow module, or None when tracking is off or unavailable.
    """
    if not settings.MLFLOW_ENABLED:
        return None
    try:
        import mlflow
        return mlflow
    except ImportError:
        logger.warning("mlflow not installed — tracking disabled. Run: pip install '.[tracking]'")
        return None


def setup_mlflow() -> None:
    """Called once at application startup; creates the experiment if needed."""
    mlflow = _get_mlflow()
    if mlflow is None:
        return

    mlflow.set_tracking_uri(settings.MLFLOW_TRACKING_URI)

    if mlflow.get_experiment_by_name(EXPERIMENT_NAME) is None:
        mlflow.create_experiment(EXPERIMENT_NAME)
        logger.info("MLflow experiment created", experiment=EXPERIMENT_NAME)

    mlflow.set_experiment(EXPERIMENT_NAME)
    logger.info("MLflow tracking initialised", uri=settings.MLFLOW_TRACKING_URI)


def track_llm_call(
    kind: str,
    prompt_chars: int,
    response: str,
    latency_ms: float,
    user_id: str,
    mock: bool = True,
) -> Optional[str]:
    """
    Log a single LLM call as an MLflow run.

    Returns:
        The MLflow run_id string, or None if tracking is off or failed.
    """
    mlflow = _get_mlflow()
    if mlflow is None:
        return None

    try:
        with mlflow.start_run() as run:
            mlflow.log_params({
                "kind":        kind,
                "model":       settings.LLM_MODEL if not mock else "mock",
                "user_id":     user_id,
                "mock_mode":   mock,
                "environment": settings.APP_ENV,
            })
            mlflow.log_metrics({
                "latency_ms":        latency_ms,
                "prompt_chars":      float(prompt_chars),
                "response_length":   len(response),
                # ~4 chars per token
                "approx_tokens_in":  prompt_chars / 4,
                "approx_tokens_out": len(response) / 4,
            })
            mlflow.set_tags({"kind": kind, "source": "api"})

            run_id = run.info.run_id
            logger.info("MLflow run logged", run_id=run_id, kind=kind)
            return run_id

    except Exception as exc:
        # Tracking failures never break the request
        logger.warning("MLflow tracking failed (non-fatal)", error=str(exc))
        return None
