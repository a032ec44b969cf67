from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Avg, Count


class UserRole(models.TextChoices):
    FREELANCER = "freelancer", "Freelancer"
    PROJECT_OWNER = "project_owner", "Project Owner"
    ADMIN = "admin", "Admin"


class User(AbstractUser):
    display_name = models.CharField(max_length=150, blank=True, default="")
    bio = models.TextField(blank=True, default="")
    skills = models.JSONField(default=list, blank=True)
    avatar = models.URLField(blank=True, default="")
    hourly_rate = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)]
    )
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.FREELANCER)

    def __str__(self):
        return self.username

    def set_role(self, role):
        """Admins are staff; demoting an admin takes staff access away."""
        self.role = role
        self.is_staff = role == UserRole.ADMIN

    @property
    def full_name(self):
        return self.get_full_name() or self.display_name or self.username


RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]

REVIEW_CATEGORIES = ("communication", "quality", "timeliness", "professionalism", "collaboration")


class Review(models.Model):
    project = models.ForeignKey("projects.Project", on_delete=models.CASCADE, related_name="reviews")
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews_given"
    )
    reviewee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews_received"
    )
    rating = models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)

    communication = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    quality = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    timeliness = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    professionalism = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    collaboration = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)

    comment = models.TextField(max_length=1000)
    is_public = models.BooleanField(default=True)
    response = models.TextField(blank=True, default="")
    responded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["reviewer", "reviewee", "project"], name="uq_review_per_project")
        ]
        indexes = [models.Index(fields=["reviewee", "rating"])]

    def __str__(self):
        return f"{self.reviewer_id} -> {self.reviewee_id} ({self.rating})"

    @property
    def category_scores(self):
        return {name: getattr(self, name) for name in REVIEW_CATEGORIES}

    @property
    def average_category_rating(self):
        """Mean of the scored categories, or the overall rating when none were scored."""
        scores = [score for score in self.category_scores.values() if score is not None]
        if not scores:
            return self.rating
        return sum(scores) / len(scores)

    @classmethod
    def user_average_rating(cls, user):
        qs = cls.objects.filter(reviewee=user, is_public=True)
        summary = qs.aggregate(average=Avg("rating"), total=Count("id"))
        if not summary["total"]:
            return {"average_rating": 0, "total_reviews": 0, "rating_distribution": []}

        distribution = [0, 0, 0, 0, 0]
        for rating in qs.values_list("rating", flat=True):
            distribution[int(rating) - 1] += 1

        return {
            "average_rating": round(summary["average"], 1),
            "total_reviews": summary["total"],
            "rating_distribution": distribution,
        }
