"""Configuration of the volumetric diffuse evaluator."""

from dataclasses import dataclass


@dataclass
class EvaluatorConfig:
    """Options selected once when an evaluator is built.

    Attributes:
        wave_uniform_batching: If True, use lane-batched accumulation with
            group-uniform atlas handles; otherwise visit volumes naively
        previous_frame_textures: If True, sample the previous frame's atlas
            fields, stored num_volumes handles after the current ones
        lane_group_size: Lanes per synchronous group for batched accumulation
            (power of 2, at most 128)
        weight_epsilon: Floor of the total weight in the final division
        verbose: Print evaluation summaries
    """

    wave_uniform_batching: bool = False
    previous_frame_textures: bool = False
    lane_group_size: int = 32
    weight_epsilon: float = 1e-4
    verbose: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if not self._is_power_of_two(self.lane_group_size) or self.lane_group_size > 128:
            raise ValueError(
                f"lane_group_size must be a power of 2 no larger than 128, got {self.lane_group_size}"
            )
        if not self.weight_epsilon > 0:
            raise ValueError(f"weight_epsilon must be positive, got {self.weight_epsilon}")

    @staticmethod
    def _is_power_of_two(n: int) -> bool:
        """Check if n is a power of 2."""
        return n > 0 and (n & (n - 1)) == 0

    @property
    def mode(self) -> str:
        """Name of the accumulation strategy."""
        return "lane_batched" if self.wave_uniform_batching else "naive"

    def to_dict(self) -> dict:
        return {
            "wave_uniform_batching": self.wave_uniform_batching,
            "previous_frame_textures": self.previous_frame_textures,
            "lane_group_size": self.lane_group_size,
            "weight_epsilon": self.weight_epsilon,
            "verbose": self.verbose,
        }
