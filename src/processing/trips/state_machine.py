"""Debounced home/away state machine.

A single sample never flips the state. A transition starts as pending and is
committed only once more than ``confirmation_threshold`` consecutive samples
agree with it; any sample that agrees with the current state cancels it.
Committing to home closes the away episode and hands it to the
TripAssembler.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from location_canon.codebook.trips import LocationState
from location_canon.records import DetectedTrip, LocationSample

from .configs import TripDetectionConfig
from .trip_assembler import TripAssembler
from .visit_aggregator import VisitAggregator

logger = logging.getLogger(__name__)


@dataclass
class PendingTransition:
    """A state change awaiting confirmation."""

    target_state: LocationState
    start_time: datetime
    confirming_point_count: int = 1


@dataclass
class UserDetectionState:
    """Working state for one user over one date range.

    Owned by a single detection run and never shared between ranges.
    """

    user_id: str
    current_state: LocationState
    current_state_start_time: datetime
    last_home_state_start_time: datetime
    visits: VisitAggregator
    data_points_in_current_state: int = 0
    pending_transition: PendingTransition | None = None
    last_away_sample: LocationSample | None = field(default=None, repr=False)

    @classmethod
    def at_home(
        cls,
        user_id: str,
        start_time: datetime,
        config: TripDetectionConfig | None = None,
    ) -> "UserDetectionState":
        """Fresh state, at home since ``start_time``."""
        return cls(
            user_id=user_id,
            current_state=LocationState.HOME,
            current_state_start_time=start_time,
            last_home_state_start_time=start_time,
            visits=VisitAggregator(config),
        )


class ConfirmationStateMachine:
    """Feeds classified samples through the debounced state machine."""

    def __init__(
        self,
        config: TripDetectionConfig | None = None,
        assembler: TripAssembler | None = None,
        home_country_code: str | None = None,
    ) -> None:
        """Initialize state machine.

        Args:
            config: TripDetectionConfig with the confirmation threshold
            assembler: Assembler used to finalize away episodes
            home_country_code: User's home country, passed to the assembler
        """
        self.config = config or TripDetectionConfig()
        self.assembler = assembler or TripAssembler(self.config)
        self.home_country_code = home_country_code

    def advance(
        self,
        state: UserDetectionState,
        sample: LocationSample,
        point_state: LocationState,
    ) -> DetectedTrip | None:
        """Apply one classified sample to the state.

        Args:
            state: Working state, updated in place
            sample: The sample, in ascending time order
            point_state: Classification of the sample

        Returns:
            A trip if this sample confirmed a return home that closed a
            qualifying away episode, else None
        """
        if point_state == state.current_state:
            state.data_points_in_current_state += 1
            if point_state == LocationState.HOME:
                state.last_home_state_start_time = sample.recorded_at
            else:
                state.visits.record(sample, state.last_away_sample)
                state.last_away_sample = sample
            state.pending_transition = None
            return None

        pending = state.pending_transition
        if pending is None or pending.target_state != point_state:
            state.pending_transition = PendingTransition(
                target_state=point_state,
                start_time=sample.recorded_at,
            )
            return None

        pending.confirming_point_count += 1
        if pending.confirming_point_count <= self.config.confirmation_threshold:
            return None

        return self._commit(state, pending)

    def finish(
        self,
        state: UserDetectionState,
        range_end: datetime,
    ) -> DetectedTrip | None:
        """Close an away episode still open at the end of a date range."""
        if state.current_state != LocationState.AWAY or len(state.visits) == 0:
            return None
        logger.debug(
            "Closing open away episode for user %s at %s",
            state.user_id,
            range_end,
        )
        return self.assembler.assemble(
            state.user_id,
            state.visits,
            state.last_home_state_start_time,
            range_end,
            self.home_country_code,
        )

    def _commit(
        self,
        state: UserDetectionState,
        pending: PendingTransition,
    ) -> DetectedTrip | None:
        """Commit a confirmed transition."""
        trip = None
        if pending.target_state == LocationState.HOME:
            trip = self.assembler.assemble(
                state.user_id,
                state.visits,
                state.last_home_state_start_time,
                pending.start_time,
                self.home_country_code,
            )
            state.last_home_state_start_time = pending.start_time
            state.visits.reset()
            state.last_away_sample = None

        logger.debug(
            "User %s: %s -> %s at %s",
            state.user_id,
            state.current_state,
            pending.target_state,
            pending.start_time,
        )
        state.current_state = pending.target_state
        state.current_state_start_time = pending.start_time
        state.data_points_in_current_state = pending.confirming_point_count
        state.pending_transition = None
        return trip
