"""Pipeline execution module for running data processing steps."""

import inspect
import logging
import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from location_canon import CanonicalData

logger = logging.getLogger(__name__)

# Keywords the pipeline supplies itself on every step call
RESERVED_ARGS = frozenset({
    "canonical_data",
    "validate_input",
    "validate_output",
})

TEMPLATE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_templates(
    obj: Any,  # noqa: ANN401
    variables: dict[str, str],
) -> Any:  # noqa: ANN401
    """Replace ``{{ name }}`` placeholders in nested config values.

    Unknown names are left untouched.
    """
    if isinstance(obj, str):
        return TEMPLATE_PATTERN.sub(
            lambda m: variables.get(m.group(1), m.group(0)), obj
        )
    if isinstance(obj, dict):
        return {k: render_templates(v, variables) for k, v in obj.items()}
    if isinstance(obj, list):
        return [render_templates(item, variables) for item in obj]
    return obj


class Pipeline:
    """Runs the steps listed in a YAML configuration, in order.

    Step functions are registered by name. Each configured step receives the
    canonical tables its signature names from ``self.data`` and everything
    else from its ``params`` block.
    """

    data: CanonicalData
    steps: dict[str, Callable]

    def __init__(
        self,
        config_path: str | Path,
        steps: list[Callable] | None = None,
    ) -> None:
        """Initialize the Pipeline with configuration and step functions.

        Args:
            config_path: Path to the YAML configuration.
            steps: Step functions; the config refers to them by name.
        """
        self.config_path = Path(config_path)
        self.config = self._load_config()
        self.data = CanonicalData()
        self.steps = {func.__name__: func for func in steps or []}

    def _load_config(self) -> dict[str, Any]:
        """Read the YAML config and fill in its template variables.

        Top-level string values are the variables; ``{{ name }}`` anywhere
        in the config is replaced by the value of ``name``.
        """
        with self.config_path.open() as f:
            raw = yaml.safe_load(f)

        if not isinstance(raw, dict) or not isinstance(raw.get("steps"), list):
            msg = f"Pipeline config {self.config_path} has no 'steps' list"
            raise ValueError(msg)

        variables = {k: v for k, v in raw.items() if isinstance(v, str)}
        return render_templates(raw, variables)

    def _step_config(self, step_name: str) -> dict[str, Any]:
        for step_cfg in self.config["steps"]:
            if step_cfg.get("name") == step_name:
                return step_cfg
        return {}

    def parse_step_args(
        self, step_name: str, step_obj: Callable
    ) -> dict[str, Any]:
        """Build the keyword arguments for one step call.

        Parameters named after a canonical table are taken from
        ``self.data``; the rest from the step's ``params``. A step accepting
        ``**kwargs`` also receives the params its signature does not name.

        Args:
            step_name: Name of the step in the config.
            step_obj: The step function.

        Returns:
            Keyword arguments for the step call, without reserved keywords.

        Raises:
            ValueError: If a parameter without default is not configured.
        """
        params = self._step_config(step_name).get("params") or {}
        signature = inspect.signature(step_obj).parameters
        tables = set(CanonicalData.table_names())

        named = {
            name: p for name, p in signature.items()
            if name not in RESERVED_ARGS
            and p.kind is not inspect.Parameter.VAR_KEYWORD
        }
        kwargs: dict[str, Any] = {}
        for name, param in named.items():
            if name in tables:
                kwargs[name] = getattr(self.data, name)
            elif name in params:
                kwargs[name] = params[name]
            elif param.default is inspect.Parameter.empty:
                msg = (
                    f"Missing required parameter '{name}' for step "
                    f"'{step_name}'. Function expects: {', '.join(named)}"
                )
                raise ValueError(msg)

        takes_extra = any(
            p.kind is inspect.Parameter.VAR_KEYWORD for p in signature.values()
        )
        if takes_extra:
            kwargs.update({
                k: v for k, v in params.items()
                if k not in signature and k not in RESERVED_ARGS
            })

        return kwargs

    def run(self) -> CanonicalData:
        """Run every configured step in order and return the tables."""
        configured = self.config["steps"]
        for i, step_cfg in enumerate(configured, start=1):
            step_name = step_cfg.get("name")
            step_obj = self.steps.get(step_name)
            if step_obj is None:
                msg = f"Step '{step_name}' not found in pipeline steps."
                raise ValueError(msg)

            logger.info("=" * 70)
            logger.info("Step %d/%d: %s", i, len(configured), step_name)
            logger.info("=" * 70)

            started = time.perf_counter()
            step_obj(
                **self.parse_step_args(step_name, step_obj),
                validate_input=step_cfg.get("validate_input", True),
                validate_output=step_cfg.get("validate_output", False),
                canonical_data=self.data,
            )
            logger.info(
                "Step %s finished in %.1fs",
                step_name,
                time.perf_counter() - started,
            )

        logger.info("Pipeline completed.")
        return self.data
