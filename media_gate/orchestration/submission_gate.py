"""Client-side submission gate.

Holds the queue of files the uploader has selected, runs extraction and
rule evaluation on each, and decides whether (and with which files) a
submission may be sent.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union

from media_gate.errors import SubmissionNotAllowed
from media_gate.extractors.metadata_extractor import extract_metadata
from media_gate.types import (
    FileVerdict,
    MediaFile,
    NormalizedMetadata,
    PendingFile,
    Project,
    ProjectMode,
    SubmissionFile,
    SubmissionPayload,
    SubmitterIdentity,
)
from media_gate.validators.identity import is_valid_email, is_valid_user_id, normalize_string
from media_gate.validators.metadata_validator import evaluate_metadata

logger = logging.getLogger(__name__)

Extractor = Callable[[MediaFile], NormalizedMetadata]
Evaluator = Callable[[NormalizedMetadata, dict], FileVerdict]


class GateState(str, Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    AT_CAPACITY = "at_capacity"


@dataclass
class AddFiles:
    """Command: the uploader selected a batch of files."""
    batch: List[MediaFile]


@dataclass
class RemoveFile:
    """Command: drop one queued file by identity key."""
    identity_key: str


@dataclass
class BatchOutcome:
    accepted: List[PendingFile] = field(default_factory=list)
    duplicates: List[MediaFile] = field(default_factory=list)
    overflow: List[MediaFile] = field(default_factory=list)
    message: Optional[str] = None


@dataclass
class RemovalOutcome:
    removed: Optional[PendingFile] = None


@dataclass
class EligibilityReport:
    allowed: bool
    hard_passing: int
    required: int
    reasons: List[str] = field(default_factory=list)


class SubmissionGate:
    """
    Bounded, single-writer queue of pending files for one project.

    Mutations go through ``handle()`` with an ``AddFiles`` or ``RemoveFile``
    command and are serialized by a lock. Extraction and evaluation for the
    files of one batch run concurrently; results keep selection order.
    """

    def __init__(
        self,
        project: Project,
        extractor: Extractor = extract_metadata,
        evaluator: Evaluator = evaluate_metadata,
        max_workers: int = 4
    ):
        self.project = project
        self.extractor = extractor
        self.evaluator = evaluator
        self.max_workers = max(1, max_workers)
        self._queue: List[PendingFile] = []
        self._lock = threading.Lock()

    # -- state -------------------------------------------------------------

    @property
    def max_files(self) -> int:
        return self.project.config.max_files

    @property
    def required_files(self) -> int:
        return self.project.config.required_files

    @property
    def pending(self) -> List[PendingFile]:
        return list(self._queue)

    @property
    def state(self) -> GateState:
        if not self._queue:
            return GateState.EMPTY
        if len(self._queue) >= self.max_files:
            return GateState.AT_CAPACITY
        return GateState.ACCUMULATING

    def hard_passing(self) -> List[PendingFile]:
        return [p for p in self._queue if p.hard_pass]

    # -- commands ----------------------------------------------------------

    def handle(self, command: Union[AddFiles, RemoveFile]):
        if isinstance(command, AddFiles):
            return self.files_selected(command.batch)
        if isinstance(command, RemoveFile):
            return self.remove_file(command.identity_key)
        raise TypeError(f"Unsupported gate command: {type(command).__name__}")

    def files_selected(self, batch: List[MediaFile]) -> BatchOutcome:
        """Dedupe, cap to the remaining room, then process and append."""
        with self._lock:
            outcome = BatchOutcome()

            known = {p.identity_key for p in self._queue}
            fresh: List[MediaFile] = []
            for media_file in batch:
                key = media_file.identity_key
                if key in known:
                    outcome.duplicates.append(media_file)
                    continue
                known.add(key)
                fresh.append(media_file)

            if outcome.duplicates:
                logger.debug(f"Ignoring {len(outcome.duplicates)} already selected file(s)")
            if not fresh:
                return outcome

            room = max(0, self.max_files - len(self._queue))
            if room == 0:
                outcome.overflow = fresh
                outcome.message = (
                    f"Maximum {self.max_files} files allowed. "
                    "Remove a file before adding more."
                )
                logger.info(f"Batch of {len(fresh)} rejected: gate at capacity")
                return outcome

            accepted_files = fresh[:room]
            outcome.overflow = fresh[room:]
            if outcome.overflow:
                outcome.message = (
                    f"Only {room} more file(s) allowed (maximum {self.max_files}). "
                    f"{len(outcome.overflow)} file(s) were not added."
                )
                logger.info(f"Batch partially accepted: {room}/{len(fresh)} file(s)")

            outcome.accepted = self._process_batch(accepted_files)
            self._queue.extend(outcome.accepted)
            return outcome

    def remove_file(self, identity_key: str) -> RemovalOutcome:
        with self._lock:
            for index, pending in enumerate(self._queue):
                if pending.identity_key == identity_key:
                    del self._queue[index]
                    logger.debug(f"Removed {pending.raw_file.name} from queue")
                    return RemovalOutcome(removed=pending)
            return RemovalOutcome()

    def reconfigure(self, project: Project):
        """Switch to an updated project; every queued verdict is recomputed."""
        with self._lock:
            self.project = project
            files = [p.raw_file for p in self._queue]
            self._queue = self._process_batch(files)
            if len(self._queue) > self.max_files:
                logger.warning(
                    f"Queue holds {len(self._queue)} files but project now allows {self.max_files}"
                )

    # -- processing --------------------------------------------------------

    def _process_one(self, media_file: MediaFile) -> PendingFile:
        metadata = self.extractor(media_file)
        verdict = self.evaluator(metadata, self.project.config.metadata_requirements)
        logger.info(
            f"{media_file.name}: kind={metadata.kind.value} | "
            f"{'HARD PASS' if verdict.hard_pass else 'HARD FAIL'} | "
            f"hard={verdict.hard_failures} soft={verdict.soft_failures}"
        )
        return PendingFile(identity_key=media_file.identity_key, raw_file=media_file, verdict=verdict)

    def _process_batch(self, files: List[MediaFile]) -> List[PendingFile]:
        if not files:
            return []
        if len(files) == 1 or self.max_workers == 1:
            return [self._process_one(f) for f in files]

        results = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(files))) as executor:
            future_to_index = {
                executor.submit(self._process_one, media_file): i
                for i, media_file in enumerate(files)
            }
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()

        # Reconstruct results in selection order
        return [results[i] for i in range(len(files))]

    # -- submission --------------------------------------------------------

    def check_eligibility(self, identity: SubmitterIdentity) -> EligibilityReport:
        hard_passing = len(self.hard_passing())
        reasons = []

        if self.project.config.mode == ProjectMode.SELF_CHECK:
            reasons.append("This project is self-check only; submissions are not stored.")
        if hard_passing < self.required_files:
            reasons.append(
                f"{hard_passing} of {self.required_files} required file(s) pass all hard rules"
            )
        if not normalize_string(identity.user_name):
            reasons.append("Name is required")
        if not is_valid_email(identity.user_email):
            reasons.append("Invalid email format")
        if not is_valid_user_id(identity.user_id):
            reasons.append("User ID must contain only numbers")

        return EligibilityReport(
            allowed=not reasons,
            hard_passing=hard_passing,
            required=self.required_files,
            reasons=reasons,
        )

    def can_submit(self, identity: SubmitterIdentity) -> bool:
        return self.check_eligibility(identity).allowed

    def build_payload(self, identity: SubmitterIdentity) -> SubmissionPayload:
        """Build the wire payload from hard-passing files only."""
        report = self.check_eligibility(identity)
        if not report.allowed:
            raise SubmissionNotAllowed(report.reasons)

        files = tuple(
            SubmissionFile(
                filename=p.raw_file.name,
                type=p.raw_file.type,
                size=p.raw_file.size,
                metadata=p.verdict.normalized_metadata.to_dict(),
                validation=p.verdict.summary(),
            )
            for p in self.hard_passing()
        )
        return SubmissionPayload(
            user_name=normalize_string(identity.user_name),
            user_email=normalize_string(identity.user_email),
            user_id=normalize_string(identity.user_id),
            files=files,
        )

    def submit(self, identity: SubmitterIdentity, client) -> dict:
        """Build a payload and post it through a ``VerificationClient``."""
        payload = self.build_payload(identity)
        logger.info(f"Submitting {len(payload.files)} file(s) to project {self.project.id}")
        return client.submit_verification(self.project.id, payload)
