"""Message ledger use case.

Turns chat events (new message, edit, delete) into at most one ledger row per
message id. The week a row is booked under never changes after the first
write; edits and forced reprocessing only overwrite the point columns.
"""

from pomo_counter.config.logging_config import get_logger
from pomo_counter.domain.exceptions import ChallengeNotFoundError, WeekNotFoundError
from pomo_counter.domain.models import (
    Challenge,
    MessageLog,
    MessageProcessingResult,
    ProcessingStatus,
    Week,
)
from pomo_counter.domain.protocols import RepositoryProtocol
from pomo_counter.services.emoji_detector import detect_emojis
from pomo_counter.services.points_calculator import calculate_points

logger = get_logger(__name__)


class MessageLedger:
    """Idempotent bookkeeping of processed chat messages."""

    def __init__(self, repository: RepositoryProtocol) -> None:
        self._repository = repository

    @property
    def repository(self) -> RepositoryProtocol:
        return self._repository

    def process(
        self,
        message_id: int,
        user_id: int,
        content: str | None,
        channel_id: int | None,
        force_reprocess: bool = False,
    ) -> MessageProcessingResult:
        """Process an inbound chat message.

        Args:
            message_id: Chat message id
            user_id: Author id
            content: Raw message text
            channel_id: Thread/channel the message was posted in
            force_reprocess: Recalculate and overwrite an existing row

        Returns:
            Processing result; expected non-events are statuses, not errors

        Raises:
            RepositoryError: On storage errors

        Example:
            >>> result = ledger.process(1001, 42, "🍅🍅", channel_id=555)
            >>> result.status
            <ProcessingStatus.PROCESSED: 'processed'>
        """
        existing = self._repository.get_message_log(message_id)
        if existing is not None and not force_reprocess:
            logger.debug("message_already_processed", message_id=message_id)
            return MessageProcessingResult(
                status=ProcessingStatus.ALREADY_PROCESSED, message_log=existing
            )

        week: Week | None
        if existing is not None:
            week = self._repository.get_week(existing.week_id)
        else:
            week = self._repository.find_active_week_by_channel(channel_id)

        if week is None:
            logger.debug(
                "message_no_active_week", message_id=message_id, channel_id=channel_id
            )
            return MessageProcessingResult(status=ProcessingStatus.NO_ACTIVE_WEEK)

        return self._book(week, message_id, user_id, content, existing)

    def process_for_week(
        self,
        week: Week,
        message_id: int,
        user_id: int,
        content: str | None,
        force_reprocess: bool = False,
    ) -> MessageProcessingResult:
        """Process a message for a known week, bypassing channel resolution.

        An existing row keeps the week it was first booked under.

        Raises:
            RepositoryError: On storage errors
            ChallengeNotFoundError: If the week's challenge is gone
        """
        existing = self._repository.get_message_log(message_id)
        if existing is not None and not force_reprocess:
            logger.debug("message_already_processed", message_id=message_id)
            return MessageProcessingResult(
                status=ProcessingStatus.ALREADY_PROCESSED, message_log=existing
            )

        if existing is not None and existing.week_id != week.id:
            booked_week = self._repository.get_week(existing.week_id)
            if booked_week is None:
                raise WeekNotFoundError(existing.week_id)
            week = booked_week

        return self._book(week, message_id, user_id, content, existing)

    def update(self, message_id: int, new_content: str | None) -> bool:
        """Recalculate an edited message against its stored week.

        Returns:
            True if the row was updated; False when the message was never
            counted or its challenge is no longer active
        """
        existing = self._repository.get_message_log(message_id)
        if existing is None:
            logger.debug("message_update_skipped_untracked", message_id=message_id)
            return False

        challenge = self._challenge_for_week_id(existing.week_id)
        if challenge is None or not challenge.is_active:
            logger.debug(
                "message_update_skipped_inactive_challenge",
                message_id=message_id,
                week_id=existing.week_id,
            )
            return False

        breakdown = calculate_points(
            detect_emojis(new_content),
            self._repository.get_active_emojis(challenge.server_id, challenge.id),
        )
        updated = self._repository.update_message_points(message_id, breakdown)
        if updated:
            logger.info(
                "message_updated",
                message_id=message_id,
                week_id=existing.week_id,
                pomodoro_points=breakdown.pomodoro_points,
                bonus_points=breakdown.bonus_points,
                goal_points=breakdown.goal_points,
            )
        return updated

    def delete(self, message_id: int) -> bool:
        """Remove the ledger row of a deleted message.

        Returns:
            True if a row was removed
        """
        deleted = self._repository.delete_message_log(message_id)
        if deleted:
            logger.info("message_log_deleted", message_id=message_id)
        else:
            logger.debug("message_delete_skipped_untracked", message_id=message_id)
        return deleted

    def _challenge_for_week_id(self, week_id: int) -> Challenge | None:
        week = self._repository.get_week(week_id)
        if week is None:
            return None
        return self._repository.get_challenge(week.challenge_id)

    def _book(
        self,
        week: Week,
        message_id: int,
        user_id: int,
        content: str | None,
        existing: MessageLog | None,
    ) -> MessageProcessingResult:
        detection = detect_emojis(content)
        if detection.total_count == 0 and existing is None:
            logger.debug("message_no_emojis", message_id=message_id, week_id=week.id)
            return MessageProcessingResult(status=ProcessingStatus.NO_EMOJIS)

        challenge = self._repository.get_challenge(week.challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(week.challenge_id)

        breakdown = calculate_points(
            detection,
            self._repository.get_active_emojis(challenge.server_id, challenge.id),
        )

        assert week.id is not None
        log = MessageLog(
            message_id=message_id,
            user_id=existing.user_id if existing else user_id,
            week_id=existing.week_id if existing else week.id,
            pomodoro_points=breakdown.pomodoro_points,
            bonus_points=breakdown.bonus_points,
            goal_points=breakdown.goal_points,
        )

        if existing is None:
            if not self._repository.insert_message_log(log):
                stored = self._repository.get_message_log(message_id)
                logger.debug("message_insert_lost_race", message_id=message_id)
                return MessageProcessingResult(
                    status=ProcessingStatus.ALREADY_PROCESSED, message_log=stored
                )
            stored = log
        else:
            stored = self._repository.upsert_message_log(log)

        logger.info(
            "message_processed",
            message_id=message_id,
            user_id=stored.user_id,
            week_id=stored.week_id,
            pomodoro_points=stored.pomodoro_points,
            bonus_points=stored.bonus_points,
            goal_points=stored.goal_points,
            resolved_tokens=breakdown.resolved_token_count,
            reprocessed=existing is not None,
        )
        return MessageProcessingResult(
            status=ProcessingStatus.PROCESSED,
            message_log=stored,
            breakdown=breakdown,
            detected_emojis=detection.total_count,
        )
