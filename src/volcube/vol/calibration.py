"""
SABR model calibration.

Fits SABR parameters to the (strike, vol) observations of a grid node:
- Beta fixed by convention (0.7) or freed on request
- alpha, nu, rho fitted by bounded L-BFGS-B from explicit initial guesses
- Differential evolution fallback when the local fit misses the target
- Fits worse than the accuracy tolerance raise instead of returning
"""

from concurrent.futures import Executor
from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import numpy as np
from scipy.optimize import minimize, differential_evolution

from ..errors import CalibrationAccuracyError, InvalidInputError
from ..tensor import LayeredTensor
from .sabr import (
    ALPHA_BOUNDS,
    BETA_BOUNDS,
    NU_BOUNDS,
    PARAMETER_LAYERS,
    RHO_BOUNDS,
    SabrParameters,
    alpha_from_atm_vol,
    hagan_black_vol,
)

logger = logging.getLogger(__name__)

# Residuals are scaled to vol basis points inside the optimizer
_RESIDUAL_SCALE = 1e4
_PENALTY = 1e10


def _improves(candidate: float, best: float) -> bool:
    """True when candidate is a finite RMSE beating best (a NaN best always loses)."""
    if not np.isfinite(candidate):
        return False
    return bool(not np.isfinite(best) or candidate < best)


@dataclass(frozen=True)
class CalibrationContext:
    """
    Initial guesses for a SABR fit.

    Passed explicitly into each calibration. Callers wanting a warm start
    build the next context from the previous result.
    """
    alpha: float = 0.02
    beta: float = 0.36
    nu: float = 0.4
    rho: float = 0.2

    @classmethod
    def from_parameters(cls, params: SabrParameters) -> "CalibrationContext":
        return cls(alpha=params.alpha, beta=params.beta, nu=params.nu, rho=params.rho)

    @classmethod
    def from_result(cls, result: "CalibrationResult") -> "CalibrationContext":
        return cls.from_parameters(result.parameters)


@dataclass
class CalibrationResult:
    """Result of a single-node SABR calibration."""
    parameters: SabrParameters
    expiry: float
    rmse: float
    max_error: float
    errors: np.ndarray = field(repr=False)  # model - market, per strike
    iterations: int = 0
    method: str = "L-BFGS-B"

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.parameters.to_dict(),
            "expiry": self.expiry,
            "rmse": self.rmse,
            "max_abs_error": self.max_error,
            "num_quotes": len(self.errors),
            "iterations": self.iterations,
            "method": self.method,
        }


class SabrCalibrator:
    """
    Per-node SABR calibrator.

    Attributes:
        beta: Fixed CEV exponent, or None to fit beta too
        max_iterations: Iteration cap of the local optimizer
        tolerance: Function tolerance of the local optimizer
        accuracy: Maximum RMSE (vol units) accepted for a fit
        use_global_fallback: Try differential evolution when the local fit fails
        seed: Seed of the global optimizer, for reproducible fits
    """

    def __init__(
        self,
        beta: Optional[float] = 0.7,
        max_iterations: int = 500,
        tolerance: float = 1e-12,
        accuracy: float = 1e-4,
        use_global_fallback: bool = True,
        seed: int = 42
    ):
        if beta is not None and not 0 <= beta <= 1:
            raise InvalidInputError(f"beta must be in [0, 1], got {beta}")
        if max_iterations <= 0:
            raise InvalidInputError(f"max_iterations must be positive, got {max_iterations}")
        if accuracy <= 0:
            raise InvalidInputError(f"accuracy must be positive, got {accuracy}")

        self.beta = beta
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.accuracy = accuracy
        self.use_global_fallback = use_global_fallback
        self.seed = seed

    @property
    def fits_beta(self) -> bool:
        return self.beta is None

    def _bounds(self) -> List[Tuple[float, float]]:
        if self.fits_beta:
            return [ALPHA_BOUNDS, BETA_BOUNDS, NU_BOUNDS, RHO_BOUNDS]
        return [ALPHA_BOUNDS, NU_BOUNDS, RHO_BOUNDS]

    def _unpack(self, x: np.ndarray) -> Tuple[float, float, float, float]:
        """(alpha, beta, nu, rho) from the optimizer vector."""
        if self.fits_beta:
            return x[0], x[1], x[2], x[3]
        return x[0], self.beta, x[1], x[2]

    def _pack(self, context: CalibrationContext) -> np.ndarray:
        if self.fits_beta:
            x0 = [context.alpha, context.beta, context.nu, context.rho]
        else:
            x0 = [context.alpha, context.nu, context.rho]
        bounds = self._bounds()
        return np.array([min(max(v, lo), hi) for v, (lo, hi) in zip(x0, bounds)])

    def _model_vols(self, x, strikes, forward, expiry) -> np.ndarray:
        alpha, beta, nu, rho = self._unpack(x)
        return np.array([
            hagan_black_vol(forward, K, expiry, alpha, beta, rho, nu) for K in strikes
        ])

    def calibrate(
        self,
        strikes: Sequence[float],
        vols: Sequence[float],
        expiry: float,
        forward: float,
        context: Optional[CalibrationContext] = None,
        length: Optional[float] = None
    ) -> CalibrationResult:
        """
        Fit SABR parameters to one smile.

        Args:
            strikes: Strictly increasing positive strikes (at least 2)
            vols: Black vols at the strikes
            expiry: Time to expiry in years
            forward: ATM forward of the node
            context: Initial guesses (defaults to CalibrationContext())
            length: Swap length of the node, only used to label logs/errors

        Returns:
            CalibrationResult

        Raises:
            InvalidInputError: On malformed observations
            CalibrationAccuracyError: If the RMSE exceeds self.accuracy
        """
        strikes = np.asarray(strikes, dtype=np.float64)
        vols = np.asarray(vols, dtype=np.float64)
        context = context or CalibrationContext()

        if len(strikes) < 2:
            raise InvalidInputError(f"Need at least 2 observations, got {len(strikes)}")
        if len(strikes) != len(vols):
            raise InvalidInputError("strikes and vols must have same length")
        if np.any(np.diff(strikes) <= 0):
            raise InvalidInputError("strikes must be strictly increasing")
        if strikes[0] <= 0:
            raise InvalidInputError(f"strikes must be positive, got {strikes[0]}")
        if forward <= 0:
            raise InvalidInputError(f"forward must be positive, got {forward}")
        if expiry <= 0:
            raise InvalidInputError(f"expiry must be positive, got {expiry}")
        if not np.all(np.isfinite(vols)):
            raise InvalidInputError("vols must be finite")

        def objective(x):
            model = self._model_vols(x, strikes, forward, expiry)
            if not np.all(np.isfinite(model)):
                return _PENALTY
            return float(np.sum(((model - vols) * _RESIDUAL_SCALE) ** 2))

        bounds = self._bounds()

        def local_fit(x0):
            return minimize(
                objective,
                x0,
                method='L-BFGS-B',
                bounds=bounds,
                options={'maxiter': self.max_iterations, 'ftol': self.tolerance, 'gtol': 1e-10}
            )

        def rmse_of(x):
            return float(np.sqrt(np.mean((self._model_vols(x, strikes, forward, expiry) - vols) ** 2)))

        result = local_fit(self._pack(context))
        best_x, best_rmse, method = result.x, rmse_of(result.x), "L-BFGS-B"
        iterations = int(result.nit)

        if not best_rmse <= self.accuracy:
            # Reseed alpha so the ATM level is matched from the start
            atm_idx = int(np.argmin(np.abs(strikes - forward)))
            x0 = self._pack(context)
            alpha, beta, nu, rho = self._unpack(x0)
            x0[0] = min(max(alpha_from_atm_vol(forward, expiry, vols[atm_idx], beta, rho, nu),
                            ALPHA_BOUNDS[0]), ALPHA_BOUNDS[1])
            retry = local_fit(x0)
            iterations += int(retry.nit)
            retry_rmse = rmse_of(retry.x)
            if _improves(retry_rmse, best_rmse):
                best_x, best_rmse = retry.x, retry_rmse

        if not best_rmse <= self.accuracy and self.use_global_fallback:
            logger.warning(
                "Local SABR fit missed accuracy at expiry=%.4g length=%s (rmse=%.3g); "
                "trying differential evolution", expiry, length, best_rmse
            )
            result_de = differential_evolution(
                objective, bounds, maxiter=300, tol=1e-14, seed=self.seed, polish=True
            )
            iterations += int(result_de.nit)
            de_rmse = rmse_of(result_de.x)
            if _improves(de_rmse, best_rmse):
                best_x, best_rmse, method = result_de.x, de_rmse, "differential_evolution"

        if not best_rmse <= self.accuracy:
            raise CalibrationAccuracyError(
                f"SABR accuracy not reached at expiry={expiry:.6g} length={length}: "
                f"rmse={best_rmse:.3g} > {self.accuracy:.3g}",
                rmse=best_rmse, expiry=expiry, length=length
            )

        alpha, beta, nu, rho = self._unpack(best_x)
        params = SabrParameters(
            alpha=float(alpha), beta=float(beta), nu=float(nu), rho=float(rho),
            forward=float(forward)
        )
        errors = self._model_vols(best_x, strikes, forward, expiry) - vols

        logger.debug(
            "SABR fit expiry=%.4g length=%s alpha=%.6g beta=%.3g nu=%.6g rho=%.6g rmse=%.3g",
            expiry, length, params.alpha, params.beta, params.nu, params.rho, best_rmse
        )

        return CalibrationResult(
            parameters=params,
            expiry=float(expiry),
            rmse=best_rmse,
            max_error=float(np.max(np.abs(errors))),
            errors=errors,
            iterations=iterations,
            method=method,
        )

    def _calibrate_task(self, task: Tuple) -> CalibrationResult:
        strikes, vols, expiry, forward, context, length = task
        return self.calibrate(strikes, vols, expiry, forward, context, length=length)

    def calibrate_grid(
        self,
        vol_tensor: LayeredTensor,
        strike_offsets: Sequence[float],
        forward_fn: Callable[[float, float], float],
        context: Optional[CalibrationContext] = None,
        warm_start: bool = False,
        executor: Optional[Executor] = None
    ) -> Tuple[LayeredTensor, List[List[CalibrationResult]]]:
        """
        Calibrate every node of a volatility tensor.

        Layer i of vol_tensor holds the absolute vol at strike offset i.
        Strikes at node (e, l) are forward_fn(e, l) + offsets.

        Args:
            vol_tensor: One layer per strike offset
            strike_offsets: Offsets from the ATM forward
            forward_fn: ATM forward for (expiry, length)
            context: Initial guesses for every node (first node when warm starting)
            warm_start: Seed each node from the previous node's fit (sequential only)
            executor: Optional executor to fit nodes concurrently

        Returns:
            (parameter tensor with PARAMETER_LAYERS layers, results[j][k])
        """
        offsets = np.asarray(strike_offsets, dtype=np.float64)
        if len(offsets) != vol_tensor.layer_count:
            raise InvalidInputError(
                f"{len(offsets)} strike offsets for a tensor with {vol_tensor.layer_count} layers"
            )
        context = context or CalibrationContext()

        expiries = vol_tensor.expiries.values
        lengths = vol_tensor.lengths.values
        points = vol_tensor.points

        tasks = []
        for j, expiry in enumerate(expiries):
            for k, length in enumerate(lengths):
                forward = forward_fn(expiry, length)
                node_vols = np.array([points[i][j, k] for i in range(len(offsets))])
                tasks.append((forward + offsets, node_vols, expiry, forward, context, length))

        if executor is not None:
            if warm_start:
                logger.info("Warm start ignored for concurrent calibration")
            flat_results = list(executor.map(self._calibrate_task, tasks))
        elif warm_start:
            flat_results = []
            for strikes, node_vols, expiry, forward, _, length in tasks:
                result = self.calibrate(strikes, node_vols, expiry, forward, context, length=length)
                flat_results.append(result)
                context = CalibrationContext.from_result(result)
        else:
            flat_results = [self._calibrate_task(task) for task in tasks]

        n_lengths = len(lengths)
        results = [flat_results[j * n_lengths:(j + 1) * n_lengths] for j in range(len(expiries))]

        params_tensor = LayeredTensor(expiries, lengths, len(PARAMETER_LAYERS),
                                      extrapolate=vol_tensor.extrapolate)
        for layer in range(len(PARAMETER_LAYERS)):
            params_tensor.set_layer(layer, np.array([
                [results[j][k].parameters.to_array()[layer] for k in range(n_lengths)]
                for j in range(len(expiries))
            ]))
        params_tensor.refresh()

        worst = max(flat_results, key=lambda r: r.rmse)
        logger.info(
            "Calibrated %d SABR nodes (%d x %d), worst rmse=%.3g at expiry=%.4g",
            len(flat_results), len(expiries), n_lengths, worst.rmse, worst.expiry
        )
        return params_tensor, results


__all__ = [
    "CalibrationContext",
    "CalibrationResult",
    "SabrCalibrator",
]
