"""
Random-forest search space and independent per-dimension sampling.

Each trial draws every hyperparameter uniformly and independently. This is
not a grid traversal: trials may repeat a configuration and some
configurations are never visited. The search trades completeness for speed.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from errors import EmptySearchSpaceError
from models import UNBOUNDED, HyperparameterSet, MaxDepth, MaxFeatures


@dataclass(frozen=True)
class SearchSpace:
    """Discrete candidate values for each forest hyperparameter"""
    tree_counts: Tuple[int, ...] = (50, 100, 150)
    max_depths: Tuple[MaxDepth, ...] = (10, 20, 30, UNBOUNDED)
    min_samples_splits: Tuple[int, ...] = (2, 5, 10)
    min_samples_leafs: Tuple[int, ...] = (1, 2, 4)
    max_features: Tuple[MaxFeatures, ...] = (MaxFeatures.AUTO, MaxFeatures.SQRT, MaxFeatures.LOG2)

    def dimensions(self) -> dict:
        return {
            'tree_count': self.tree_counts,
            'max_depth': self.max_depths,
            'min_samples_split': self.min_samples_splits,
            'min_samples_leaf': self.min_samples_leafs,
            'max_features': self.max_features,
        }

    def validate(self) -> None:
        empty = [name for name, values in self.dimensions().items() if len(values) == 0]
        if empty:
            raise EmptySearchSpaceError(f"No candidate values for: {', '.join(empty)}")

    def size(self) -> int:
        """Number of distinct configurations"""
        return int(np.prod([len(v) for v in self.dimensions().values()]))

    def contains(self, params: HyperparameterSet) -> bool:
        return (
            params.tree_count in self.tree_counts
            and params.max_depth in self.max_depths
            and params.min_samples_split in self.min_samples_splits
            and params.min_samples_leaf in self.min_samples_leafs
            and params.max_features in self.max_features
        )

    def sample(self, rng: np.random.RandomState) -> HyperparameterSet:
        """Draw one configuration, one independent uniform pick per dimension"""
        self.validate()

        def pick(values):
            return values[rng.randint(len(values))]

        return HyperparameterSet(
            tree_count=pick(self.tree_counts),
            max_depth=pick(self.max_depths),
            min_samples_split=pick(self.min_samples_splits),
            min_samples_leaf=pick(self.min_samples_leafs),
            max_features=pick(self.max_features),
        )

    def sample_trials(self, n_trials: int, random_seed: int) -> List[HyperparameterSet]:
        """All trial configurations up front, so results do not depend on evaluation order"""
        self.validate()
        rng = np.random.RandomState(random_seed)
        return [self.sample(rng) for _ in range(n_trials)]
