from fhs_risk.utils.logger import get_logger, timeit

__all__ = ["get_logger", "timeit"]
