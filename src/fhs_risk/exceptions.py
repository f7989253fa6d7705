"""
Error taxonomy for the option-book risk engine.

    InputDomainError          - inputs outside the model's domain (t <= 0,
                                sigma <= 0, tenor off the curve, no IV)
    NumericalInstabilityError - recursion or solver breakdown (negative
                                variance, |rho| > 1, non-convergence)
    DataContractError         - malformed or missing feed fields
    SimulationCancelled       - a running simulation was interrupted

Author: Jose Orlando Bobadilla Fuentes | CQF
"""

from typing import Optional


class RiskEngineError(Exception):
    """Base class; carries optional context to localize the failure."""

    def __init__(self, message: str, position_index: Optional[int] = None,
                 draw_index: Optional[int] = None, factor: Optional[str] = None):
        self.position_index = position_index
        self.draw_index = draw_index
        self.factor = factor
        ctx = []
        if position_index is not None:
            ctx.append(f"position={position_index}")
        if draw_index is not None:
            ctx.append(f"draw={draw_index}")
        if factor is not None:
            ctx.append(f"factor={factor}")
        super().__init__(f"{message} [{', '.join(ctx)}]" if ctx else message)


class InputDomainError(RiskEngineError, ValueError):
    pass


class NumericalInstabilityError(RiskEngineError, ArithmeticError):
    pass


class DataContractError(RiskEngineError, ValueError):
    pass


class SimulationCancelled(RiskEngineError):
    pass
