"""Strategy interface shared by the signal generators.

A SignalGenerator turns a daily price series into exactly one Signal per
bar. It never looks at cash or positions; the simulator decides whether a
signal can be acted on.

Every strategy declares a StrategyParams model with typed fields, defaults
and camelCase aliases (the names external callers send). Raw parameter maps
are validated once by parse_params(); failures raise ConfigurationError
before any calculation starts.

Implementations:
    - strategies/sma_crossover.py::SmaCrossoverStrategy
    - strategies/rsi_threshold.py::RsiThresholdStrategy
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, ValidationError

from tradesim.common.exceptions import ConfigurationError
from tradesim.common.logging import get_logger
from tradesim.common.schemas import PricePoint, Signal

logger = get_logger("STRATEGY")

_JSON_TYPE_NAMES = {int: "integer", float: "number", bool: "boolean", str: "string"}


class StrategyParams(BaseModel):
    """Base class for per-strategy parameter models."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class ParameterInfo(BaseModel):
    """Listing metadata for one strategy parameter."""

    type: str
    description: str
    default: Any = None


class StrategyInfo(BaseModel):
    """Listing metadata for one strategy."""

    name: str
    display_name: str
    description: str
    parameters: dict[str, ParameterInfo] = {}


class SignalGenerator(ABC):
    """Turns a price series plus typed parameters into a signal sequence."""

    name: ClassVar[str]
    display_name: ClassVar[str]
    description: ClassVar[str]
    params_model: ClassVar[type[StrategyParams]]

    def describe(self) -> StrategyInfo:
        """Return display name, description and parameter schema."""
        parameters: dict[str, ParameterInfo] = {}
        for field_name, field in self.params_model.model_fields.items():
            parameters[field.alias or field_name] = ParameterInfo(
                type=_JSON_TYPE_NAMES.get(field.annotation, "number"),
                description=field.description or "",
                default=field.default,
            )
        return StrategyInfo(
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            parameters=parameters,
        )

    def parse_params(self, raw: dict[str, Any] | None) -> StrategyParams:
        """Validate a raw parameter map into this strategy's params model.

        Missing keys take their defaults; unknown keys are rejected.

        Raises:
            ConfigurationError: If any value is missing a valid type or
                the parameters are inconsistent with each other.
        """
        try:
            return self.params_model.model_validate(raw or {})
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'parameters'}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigurationError(
                f"Invalid parameters for strategy '{self.name}': {problems}",
                context={"strategy": self.name, "parameters": raw or {}},
            ) from exc

    def generate(
        self,
        series: list[PricePoint],
        params: StrategyParams | dict[str, Any] | None = None,
    ) -> list[Signal]:
        """Produce one signal per bar of ``series``.

        Args:
            series: Bars in ascending date order.
            params: A params model instance, or a raw map to validate.

        Returns:
            Signals aligned index-for-index with ``series``.
        """
        if not isinstance(params, self.params_model):
            params = self.parse_params(params)

        closes = [bar.price for bar in series]
        signals = self._generate(closes, params)

        logger.debug(
            "Signals generated",
            extra={
                "data": {
                    "strategy": self.name,
                    "bars": len(closes),
                    "buys": signals.count(Signal.BUY),
                    "sells": signals.count(Signal.SELL),
                }
            },
        )
        return signals

    @abstractmethod
    def _generate(self, closes: list[float], params: Any) -> list[Signal]:
        """Strategy-specific signal computation over closing prices."""
        ...
