"""Trip detection engine and pipeline step."""
from .configs import TripDetectionConfig
from .date_ranges import allocate_date_ranges, default_detection_span
from .detection import DetectionResult, TripDetector, detect_trips
from .errors import (
    DateRangeProcessingError,
    DetectionCancelled,
    TripDetectionError,
)
from .home_locations import HomeLocationResolver, infer_home_location
from .location_classifier import LocationClassifier
from .sources import FrameHomeConfigSource, FrameSampleSource, FrameTripStore
from .state_machine import ConfirmationStateMachine, UserDetectionState
from .title_generator import TripTitle, TripTitleGenerator, generate_trip_title
from .trip_assembler import TripAssembler, calculate_trip_days
from .visit_aggregator import VisitAggregator

__all__ = [
    "ConfirmationStateMachine",
    "DateRangeProcessingError",
    "DetectionCancelled",
    "DetectionResult",
    "FrameHomeConfigSource",
    "FrameSampleSource",
    "FrameTripStore",
    "HomeLocationResolver",
    "LocationClassifier",
    "TripAssembler",
    "TripDetectionConfig",
    "TripDetectionError",
    "TripDetector",
    "TripTitle",
    "TripTitleGenerator",
    "UserDetectionState",
    "VisitAggregator",
    "allocate_date_ranges",
    "calculate_trip_days",
    "default_detection_span",
    "detect_trips",
    "generate_trip_title",
    "infer_home_location",
]
