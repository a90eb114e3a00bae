from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from . import conf, srs, states


class Contest(models.Model):
    """An exam a user is preparing for. Groups topics."""
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='contests')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    target_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class Topic(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class ContestTopic(models.Model):
    """Attaches a topic to a contest, with a study priority."""
    contest = models.ForeignKey(Contest, on_delete=models.CASCADE, related_name='contest_topics')
    topic = models.ForeignKey(Topic, on_delete=models.CASCADE, related_name='contest_topics')
    priority = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-priority', 'pk']
        unique_together = ['contest', 'topic']

    def __str__(self):
        return f"{self.contest} / {self.topic}"


class Subtopic(models.Model):
    topic = models.ForeignKey(Topic, on_delete=models.CASCADE, related_name='subtopics')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    priority = models.IntegerField(default=0)
    estimated_cards = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['topic', 'name']

    def __str__(self):
        return f"{self.topic} / {self.name}"


class Card(models.Model):
    """Study content. The scheduler never changes a card."""

    class Difficulty(models.TextChoices):
        EASY = 'easy', 'Easy'
        MEDIUM = 'medium', 'Medium'
        HARD = 'hard', 'Hard'

    subtopic = models.ForeignKey(Subtopic, on_delete=models.CASCADE, related_name='cards')
    front = models.TextField(help_text="Question or prompt")
    back = models.TextField(help_text="Answer")
    difficulty = models.CharField(max_length=10, choices=Difficulty.choices, blank=True)
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='authored_cards'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.front[:50]}..."


class ReviewRecord(models.Model):
    """
    Scheduling state of one card for one user.

    This is a projection of the user's ReviewEvent log, kept for fast
    scheduling. It is only changed through ``apply_review`` and written back
    with a compare-and-swap on ``version``.
    """

    class Status(models.TextChoices):
        NEW = states.NEW, 'New'
        LEARNING = states.LEARNING, 'Learning'
        REVIEW = states.REVIEW, 'Review'
        GRADUATED = states.GRADUATED, 'Graduated'

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='review_records')
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name='review_records')
    contest = models.ForeignKey(
        Contest, on_delete=models.SET_NULL, null=True, blank=True, related_name='review_records'
    )
    subtopic = models.ForeignKey(Subtopic, on_delete=models.CASCADE, related_name='review_records')

    # SM-2 state
    repetitions = models.PositiveIntegerField(default=0)  # Correct reviews in a row
    ease_factor = models.FloatField(
        default=srs.DEFAULT_EASE_FACTOR,
        validators=[MinValueValidator(srs.MIN_EASE_FACTOR)],
    )
    interval_days = models.PositiveIntegerField(default=0)
    next_due_at = models.DateTimeField(null=True, blank=True)  # NULL = never reviewed, due now
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.NEW)

    correct_streak = models.PositiveIntegerField(default=0)
    incorrect_streak = models.PositiveIntegerField(default=0)
    total_correct = models.PositiveIntegerField(default=0)
    total_incorrect = models.PositiveIntegerField(default=0)
    last_reviewed_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at', 'pk']
        unique_together = ['user', 'card']
        indexes = [
            models.Index(fields=['user', 'next_due_at'], name='study_record_user_due_idx'),
            models.Index(fields=['user', 'status'], name='study_record_user_status_idx'),
        ]

    def __str__(self):
        return f"{self.user} / card {self.card_id} ({self.status})"

    def clean(self):
        if self.correct_streak and self.incorrect_streak:
            raise ValidationError("Correct and incorrect streaks cannot both be running.")
        if self.repetitions > 0 and self.interval_days < 1:
            raise ValidationError({'interval_days': "Interval must be at least one day once reviewed."})

    def is_due(self, now=None):
        """A card never reviewed is always due, otherwise once next_due_at has passed."""
        if now is None:
            now = timezone.now()
        if self.last_reviewed_at is None or self.next_due_at is None:
            return True
        return self.next_due_at <= now

    def apply_review(self, quality, now, graduation_repetitions=None):
        """
        Update scheduling state in memory for a review of the given quality.

        Nothing is saved. Returns the srs.ReviewResult that was applied.
        """
        result = srs.advance(
            quality=quality,
            repetitions=self.repetitions,
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            now=now,
        )
        correct = srs.is_correct(quality)

        self.status = states.next_status(
            self.status,
            correct,
            result.repetitions,
            result.interval_days,
            graduation_repetitions=graduation_repetitions,
        )
        self.repetitions = result.repetitions
        self.ease_factor = result.ease_factor
        self.interval_days = result.interval_days
        self.next_due_at = result.next_due_at
        self.last_reviewed_at = now

        if correct:
            self.correct_streak += 1
            self.incorrect_streak = 0
            self.total_correct += 1
        else:
            self.correct_streak = 0
            self.incorrect_streak += 1
            self.total_incorrect += 1

        return result

    def reset(self):
        """Put the record back to its never-reviewed state (counters included)."""
        self.repetitions = 0
        self.ease_factor = conf.default_ease_factor()
        self.interval_days = 0
        self.next_due_at = None
        self.status = self.Status.NEW
        self.correct_streak = 0
        self.incorrect_streak = 0
        self.total_correct = 0
        self.total_incorrect = 0
        self.last_reviewed_at = None


class ReviewEvent(models.Model):
    """Append-only log of every review. Source of truth for statistics."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='review_events')
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name='review_events')
    contest = models.ForeignKey(
        Contest, on_delete=models.SET_NULL, null=True, blank=True, related_name='review_events'
    )
    subtopic = models.ForeignKey(Subtopic, on_delete=models.CASCADE, related_name='review_events')
    quality = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(srs.MIN_QUALITY), MaxValueValidator(srs.MAX_QUALITY)]
    )
    correct = models.BooleanField()

    # State after the review
    repetitions = models.PositiveIntegerField()
    ease_factor = models.FloatField(validators=[MinValueValidator(srs.MIN_EASE_FACTOR)])
    interval_days = models.PositiveIntegerField()

    response_time = models.FloatField(validators=[MinValueValidator(0)])  # seconds
    reviewed_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-reviewed_at']
        indexes = [
            models.Index(fields=['user', 'reviewed_at'], name='study_event_user_time_idx'),
        ]

    def __str__(self):
        return f"{self.user} reviewed card {self.card_id} (q={self.quality}) at {self.reviewed_at}"
