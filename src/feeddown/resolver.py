"""Resolve decay graphs into feeddown tables and final-state distributions.

The `DecayGraphResolver` walks the decay graph of every species in a
particle list and computes:

1. the mean number of each species produced in the decay cascade of every
   other species, once following the stability flags and once for each
   `.Feeddown` class;
2. the probability distribution and the first four cumulants of these
   numbers;
3. the full distribution of final states, that is, of the numbers of stable
   species left after the cascade;
4. the cumulants of the number of charged final-state particles.

Decay graphs with cycles are tolerated: a species that is reached again while
it is still on the active decay path is dropped from the cascade. It is not
counted, not expanded and does not show up in the final states, so all tables
describe the same truncated cascade.
"""

import logging
from collections import defaultdict
from enum import Enum, auto
from typing import (
    Callable,
    Dict,
    FrozenSet,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

import attr
import numpy as np
from tqdm.auto import tqdm

from .classification import DecayType, Feeddown
from .particle import ConfigurationError, Species
from .settings import DEFAULT_MAX_FINAL_STATES

Multiplicities = Tuple[Tuple[int, int], ...]
"""Sparse vector of species counts: sorted pairs of index and count."""
ContributionTable = Tuple[Dict[int, float], ...]
Cumulants = Tuple[float, float, float, float]
_ResolvedChannel = Tuple[float, Tuple[int, ...]]
_T = TypeVar("_T")

_NO_PARTICLE = np.array([1.0])
_ONE_PARTICLE = np.array([0.0, 1.0])


class DecayProcessingCancelled(RuntimeError):
    pass


class ChargeSelection(Enum):
    ALL = auto()
    POSITIVE = auto()
    NEGATIVE = auto()

    def selects(self, charge: int) -> bool:
        if self is ChargeSelection.POSITIVE:
            return charge > 0
        if self is ChargeSelection.NEGATIVE:
            return charge < 0
        return charge != 0


def _to_multiplicities(value: Mapping[int, int]) -> Multiplicities:
    if isinstance(value, Mapping):
        value = value.items()  # type: ignore
    return tuple(sorted((int(i), int(n)) for i, n in value))


@attr.s(frozen=True)
class FinalState:
    """One outcome of a decay cascade and its probability."""

    probability: float = attr.ib(converter=float)
    multiplicities: Multiplicities = attr.ib(converter=_to_multiplicities)

    def count(self, index: int) -> int:
        for species_index, number in self.multiplicities:
            if species_index == index:
                return number
        return 0

    def as_dict(self) -> Dict[int, int]:
        return dict(self.multiplicities)

    def as_vector(self, size: int) -> np.ndarray:
        vector = np.zeros(size, dtype=int)
        for species_index, number in self.multiplicities:
            vector[species_index] = number
        return vector


@attr.s(frozen=True, kw_only=True)
class DecayTables:  # pylint: disable=too-many-instance-attributes
    """Output of one `DecayGraphResolver.resolve` pass.

    All tables are indexed by the 0-based position of a species in the
    particle list that was resolved. Contribution tables are indexed by the
    *target* species and map the index of each contributing *source* species
    to the mean number of target particles in its decay cascade.
    """

    contributions: ContributionTable = attr.ib()
    contributions_by_feeddown: Dict[Feeddown, ContributionTable] = attr.ib()
    cumulants: Tuple[Dict[int, Cumulants], ...] = attr.ib()
    number_distributions: Tuple[Dict[int, Tuple[float, ...]], ...] = attr.ib()
    final_state_distributions: Tuple[Tuple[FinalState, ...], ...] = attr.ib()
    charged_cumulants: Dict[ChargeSelection, Tuple[Cumulants, ...]] = attr.ib()
    cyclic_species: FrozenSet[int] = attr.ib(converter=frozenset)


def cumulants_from_distribution(probabilities: Sequence[float]) -> Cumulants:
    """Compute the first four cumulants of a number distribution.

    Element :math:`n` of :code:`probabilities` is the probability to find
    :math:`n` particles.
    """
    probs = np.asarray(probabilities, dtype=float)
    numbers = np.arange(len(probs), dtype=float)
    moment1, moment2, moment3, moment4 = (
        float(np.sum(probs * numbers ** power)) for power in range(1, 5)
    )
    return (
        moment1,
        moment2 - moment1 ** 2,
        moment3 - 3 * moment2 * moment1 + 2 * moment1 ** 3,
        moment4
        - 4 * moment3 * moment1
        - 3 * moment2 ** 2
        + 12 * moment2 * moment1 ** 2
        - 6 * moment1 ** 4,
    )


def mean_multiplicity(distribution: Sequence[FinalState], index: int) -> float:
    """Mean number of species :code:`index` in a final-state distribution."""
    return sum(state.probability * state.count(index) for state in distribution)


def truncate_final_states(
    states: Mapping[Multiplicities, float], max_size: int
) -> Dict[Multiplicities, float]:
    """Keep the :code:`max_size` most probable final states.

    States with equal probability are ordered lexicographically by their
    multiplicities, so the result does not depend on insertion order. The
    probability of dropped states is discarded, not redistributed.
    """
    if len(states) <= max_size:
        return dict(states)
    ordered = sorted(states.items(), key=lambda item: (-item[1], item[0]))
    logging.debug(
        f"Truncating {len(states)} final states to {max_size},"
        f" dropping a probability of {sum(p for _, p in ordered[max_size:])}"
    )
    return dict(ordered[:max_size])


def _merge_multiplicities(
    first: Multiplicities, second: Multiplicities
) -> Multiplicities:
    counts = dict(first)
    for index, number in second:
        counts[index] = counts.get(index, 0) + number
    return tuple(sorted(counts.items()))


def _combine_final_states(
    first: Mapping[Multiplicities, float],
    second: Mapping[Multiplicities, float],
) -> Dict[Multiplicities, float]:
    combined: Dict[Multiplicities, float] = defaultdict(float)
    for state1, prob1 in first.items():
        for state2, prob2 in second.items():
            combined[_merge_multiplicities(state1, state2)] += prob1 * prob2
    return combined


def _add_padded(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    if len(first) < len(second):
        first, second = second, first
    result = first.copy()
    result[: len(second)] += second
    return result


def _strongly_connected_components(
    successors: Sequence[Sequence[int]],
) -> List[List[int]]:
    """Tarjan's algorithm without recursion.

    Components are returned in reverse topological order: each component
    comes after all components that can be reached from it.
    """
    # pylint: disable=too-many-locals
    counter = 0
    indices: Dict[int, int] = {}
    lowlinks: Dict[int, int] = {}
    stack: List[int] = []
    on_stack: Set[int] = set()
    components: List[List[int]] = []
    for root in range(len(successors)):
        if root in indices:
            continue
        work = [(root, 0)]
        while work:
            node, position = work.pop()
            if position == 0:
                indices[node] = lowlinks[node] = counter
                counter += 1
                stack.append(node)
                on_stack.add(node)
            children = successors[node]
            descended = False
            for child_position in range(position, len(children)):
                child = children[child_position]
                if child not in indices:
                    work.append((node, child_position + 1))
                    work.append((child, 0))
                    descended = True
                    break
                if child in on_stack:
                    lowlinks[node] = min(lowlinks[node], indices[child])
            if descended:
                continue
            if lowlinks[node] == indices[node]:
                component = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(component)
            if work:
                parent = work[-1][0]
                lowlinks[parent] = min(lowlinks[parent], lowlinks[node])
    return components


class DecayGraphResolver:
    """Resolve the decay cascades of all species in a particle list.

    Args:
        species: Species in the order of the particle list.
        pid_to_index: Identifier index of the particle list.
        decay_types: Decay type of each species, see `.classify_decay_type`.
        max_final_states: Maximal number of outcomes kept per final-state
            distribution, see `truncate_final_states`.
    """

    def __init__(
        self,
        species: Sequence[Species],
        pid_to_index: Mapping[int, int],
        decay_types: Sequence[DecayType],
        max_final_states: int = DEFAULT_MAX_FINAL_STATES,
    ) -> None:
        if len(decay_types) != len(species):
            raise ValueError(
                f"Got {len(decay_types)} decay types for {len(species)} species"
            )
        self.__species = tuple(species)
        self.__decay_types = tuple(decay_types)
        self.__max_final_states = max_final_states
        self.__channels = [
            self.__resolve_channels(item, pid_to_index)
            for item in self.__species
        ]
        self.__daughters = [
            [d for _, daughters in channels for d in daughters]
            for channels in self.__channels
        ]
        self.__cyclic, self.__reaches_cycle = self.__find_cycles()
        self.__number_memo: Dict[int, Dict[int, np.ndarray]] = {}
        self.__charged_memo: Dict[
            ChargeSelection, Dict[int, np.ndarray]
        ] = {}
        self.__final_state_memo: Dict[int, Dict[Multiplicities, float]] = {}

    @property
    def cyclic_species(self) -> FrozenSet[int]:
        return frozenset(self.__cyclic)

    @staticmethod
    def __resolve_channels(
        species: Species, pid_to_index: Mapping[int, int]
    ) -> List[_ResolvedChannel]:
        resolved = []
        for channel in species.decays:
            missing = [
                pid for pid in channel.daughters if pid not in pid_to_index
            ]
            if missing:
                raise ConfigurationError(
                    f"Decay channel of {species.name} ({species.pid}) refers"
                    f" to unknown species {missing}"
                )
            daughters = tuple(pid_to_index[pid] for pid in channel.daughters)
            resolved.append((channel.branching_ratio, daughters))
        return resolved

    def __find_cycles(self) -> Tuple[Set[int], List[bool]]:
        successors = [
            sorted({d for _, daughters in channels for d in daughters})
            for channels in self.__channels
        ]
        cyclic: Set[int] = set()
        reaches_cycle = [False] * len(successors)
        for component in _strongly_connected_components(successors):
            members = set(component)
            is_cycle = len(component) > 1 or component[0] in successors[
                component[0]
            ]
            tainted = is_cycle or any(
                reaches_cycle[child]
                for member in component
                for child in successors[member]
                if child not in members
            )
            if is_cycle:
                cyclic |= members
            for member in component:
                reaches_cycle[member] = tainted
        if cyclic:
            names = sorted(self.__species[i].name for i in cyclic)
            logging.warning(
                f"Decay graph contains cycles through {names}. Cascades are"
                " truncated where a species decays into one of its ancestors."
            )
        return cyclic, reaches_cycle

    def resolve(
        self, should_stop: Optional[Callable[[], bool]] = None
    ) -> DecayTables:
        """Compute all decay tables.

        Args:
            should_stop: Polled once per species. If it returns `True`, the
                computation is aborted with a `DecayProcessingCancelled`.
        """
        # pylint: disable=too-many-locals
        n_species = len(self.__species)
        contributions: List[Dict[int, float]] = [{} for _ in self.__species]
        by_feeddown: Dict[Feeddown, List[Dict[int, float]]] = {
            level: [{} for _ in self.__species] for level in Feeddown
        }
        cumulants: List[Dict[int, Cumulants]] = [{} for _ in self.__species]
        distributions: List[Dict[int, Tuple[float, ...]]] = [
            {} for _ in self.__species
        ]
        final_states: List[Tuple[FinalState, ...]] = []
        charged: Dict[ChargeSelection, List[Cumulants]] = {
            selection: [] for selection in ChargeSelection
        }
        logging.info(f"Resolving decays of {n_species} species")
        progress_bar = tqdm(
            total=n_species,
            desc="Resolving decays",
            disable=logging.getLogger().level > logging.WARNING,
        )
        for source in range(n_species):
            if should_stop is not None and should_stop():
                progress_bar.close()
                raise DecayProcessingCancelled(
                    f"Decay processing stopped at species {source} of"
                    f" {n_species}"
                )
            produced = self.__walk_mean(source, self.__is_unstable)
            for target, mean in produced.items():
                contributions[target][source] = mean
                probabilities = self.number_distribution(source, target)
                distributions[target][source] = tuple(
                    float(p) for p in probabilities
                )
                cumulants[target][source] = cumulants_from_distribution(
                    probabilities
                )
            for level in Feeddown:
                if not level.includes(self.__decay_types[source]):
                    continue
                produced = self.__walk_mean(source, self.__decays_at(level))
                for target, mean in produced.items():
                    by_feeddown[level][target][source] = mean
            for selection in ChargeSelection:
                charged[selection].append(
                    cumulants_from_distribution(
                        self.charged_distribution(source, selection)
                    )
                )
            final_states.append(self.final_state_distribution(source))
            progress_bar.update()
        progress_bar.close()
        return DecayTables(
            contributions=tuple(contributions),
            contributions_by_feeddown={
                level: tuple(table) for level, table in by_feeddown.items()
            },
            cumulants=tuple(cumulants),
            number_distributions=tuple(distributions),
            final_state_distributions=tuple(final_states),
            charged_cumulants={
                selection: tuple(values)
                for selection, values in charged.items()
            },
            cyclic_species=self.__cyclic,
        )

    def __is_unstable(self, index: int) -> bool:
        return not self.__species[index].stable

    def __decays_at(self, level: Feeddown) -> Callable[[int], bool]:
        def decays(index: int) -> bool:
            return level.includes(self.__decay_types[index])

        return decays

    def __walk_mean(
        self, source: int, expands: Callable[[int], bool]
    ) -> Dict[int, float]:
        """Mean number of every species produced in the cascade of a source.

        Intermediate species count as produced as well. The source itself is
        always expanded, deeper species only if :code:`expands` says so. A
        daughter that is already on the active decay path is dropped.
        """
        produced: Dict[int, float] = defaultdict(float)
        stack = [(source, 1.0, (source,))]
        while stack:
            index, weight, path = stack.pop()
            for branching_ratio, daughters in self.__channels[index]:
                channel_weight = weight * branching_ratio
                for daughter in daughters:
                    if daughter in path:
                        continue
                    produced[daughter] += channel_weight
                    if self.__channels[daughter] and expands(daughter):
                        stack.append(
                            (daughter, channel_weight, path + (daughter,))
                        )
        return dict(produced)

    def __is_final(self, index: int) -> bool:
        return not self.__channels[index] or self.__species[index].stable

    def __evaluate(
        self,
        source: int,
        evaluate_leaf: Callable[[int, Set[int]], Optional[_T]],
        combine: Callable[[int, List[_T]], _T],
        memo: Dict[int, _T],
    ) -> _T:
        """Evaluate the cascade of a species bottom-up on an explicit stack.

        :code:`evaluate_leaf` returns the value of a daughter that is not
        expanded, given the species on the active decay path, or `None` if
        the decay channels of the daughter have to be evaluated.
        :code:`combine` merges the values of all daughters of a species,
        listed in channel order. Values of species that cannot reach a cycle
        do not depend on the decay path and are stored in :code:`memo`.
        """
        on_path = {source}
        stack: List[Tuple[int, List[int], List[_T]]] = [
            (source, self.__daughters[source], [])
        ]
        while True:
            index, daughters, values = stack[-1]
            if len(values) < len(daughters):
                daughter = daughters[len(values)]
                value = evaluate_leaf(daughter, on_path)
                if value is None:
                    value = memo.get(daughter)
                if value is None:
                    on_path.add(daughter)
                    stack.append((daughter, self.__daughters[daughter], []))
                else:
                    values.append(value)
                continue
            stack.pop()
            on_path.discard(index)
            value = combine(index, values)
            if not stack:
                return value
            if not self.__reaches_cycle[index]:
                memo[index] = value
            stack[-1][2].append(value)

    def __group_by_channel(
        self, index: int, values: Sequence[_T]
    ) -> Iterator[Tuple[float, Sequence[_T]]]:
        position = 0
        for branching_ratio, daughters in self.__channels[index]:
            yield branching_ratio, values[position : position + len(daughters)]
            position += len(daughters)

    def __mix_distributions(
        self, index: int, values: List[np.ndarray]
    ) -> np.ndarray:
        result = np.zeros(1)
        for branching_ratio, distributions in self.__group_by_channel(
            index, values
        ):
            convolution = _NO_PARTICLE
            for distribution in distributions:
                convolution = np.convolve(convolution, distribution)
            result = _add_padded(result, branching_ratio * convolution)
        return result

    def number_distribution(self, source: int, target: int) -> np.ndarray:
        """Distribution of the number of :code:`target` particles.

        Element :math:`n` is the probability that the cascade of the source
        produces :math:`n` target particles, counting intermediate ones.
        """
        if not self.__channels[source]:
            return _NO_PARTICLE

        def evaluate_leaf(
            index: int, on_path: Set[int]
        ) -> Optional[np.ndarray]:
            if index in on_path:
                return _NO_PARTICLE
            if index == target:
                return _ONE_PARTICLE
            if self.__is_final(index):
                return _NO_PARTICLE
            return None

        memo = self.__number_memo.setdefault(target, {})
        return self.__evaluate(
            source, evaluate_leaf, self.__mix_distributions, memo
        )

    def charged_distribution(
        self, source: int, selection: ChargeSelection = ChargeSelection.ALL
    ) -> np.ndarray:
        """Distribution of the number of charged final-state particles."""
        if not self.__channels[source]:
            if selection.selects(self.__species[source].charge):
                return _ONE_PARTICLE
            return _NO_PARTICLE

        def evaluate_leaf(
            index: int, on_path: Set[int]
        ) -> Optional[np.ndarray]:
            if index in on_path:
                return _NO_PARTICLE
            if self.__is_final(index):
                if selection.selects(self.__species[index].charge):
                    return _ONE_PARTICLE
                return _NO_PARTICLE
            return None

        memo = self.__charged_memo.setdefault(selection, {})
        return self.__evaluate(
            source, evaluate_leaf, self.__mix_distributions, memo
        )

    def final_state_distribution(self, index: int) -> Tuple[FinalState, ...]:
        """All final states of the cascade of a species, most probable first.

        A species with decay channels is always decayed, even if its stability
        flag is set. Deeper in the cascade, only unstable species decay.
        """
        if not self.__channels[index]:
            return (FinalState(1.0, {index: 1}),)

        def evaluate_leaf(
            daughter: int, on_path: Set[int]
        ) -> Optional[Dict[Multiplicities, float]]:
            if daughter in on_path:
                return {(): 1.0}
            if self.__is_final(daughter):
                return {((daughter, 1),): 1.0}
            return None

        states = self.__evaluate(
            index,
            evaluate_leaf,
            self.__mix_final_states,
            self.__final_state_memo,
        )
        ordered = sorted(states.items(), key=lambda item: (-item[1], item[0]))
        return tuple(FinalState(prob, state) for state, prob in ordered)

    def __mix_final_states(
        self, index: int, values: List[Dict[Multiplicities, float]]
    ) -> Dict[Multiplicities, float]:
        result: Dict[Multiplicities, float] = defaultdict(float)
        for branching_ratio, daughter_states in self.__group_by_channel(
            index, values
        ):
            combined: Dict[Multiplicities, float] = {(): 1.0}
            for states in daughter_states:
                combined = truncate_final_states(
                    _combine_final_states(combined, states),
                    self.__max_final_states,
                )
            for state, probability in combined.items():
                result[state] += branching_ratio * probability
        return truncate_final_states(result, self.__max_final_states)
