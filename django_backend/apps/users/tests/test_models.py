from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.test import TestCase

from apps.projects.models import Project, ProjectStatus
from apps.users.models import Review

User = get_user_model()


class UserModelTest(TestCase):
    """Test cases for User model"""

    def test_full_name_prefers_first_and_last_name(self):
        user = User.objects.create_user(username="ada", first_name="Ada", last_name="Lovelace")
        self.assertEqual(user.full_name, "Ada Lovelace")

    def test_full_name_falls_back_to_display_name_then_username(self):
        user = User.objects.create_user(username="grace", display_name="Admiral")
        self.assertEqual(user.full_name, "Admiral")

        user.display_name = ""
        self.assertEqual(user.full_name, "grace")


class ReviewModelTest(TestCase):
    """Test cases for Review model"""

    def setUp(self):
        self.owner = User.objects.create_user(username="owner", password="testpass123")
        self.freelancer = User.objects.create_user(username="freelancer", password="testpass123")
        self.project = Project.objects.create(
            title="Landing page",
            description="Build it",
            owner=self.owner,
            status=ProjectStatus.COMPLETED,
        )
        self.project.add_member(self.freelancer)

    def review(self, reviewer=None, **fields):
        fields.setdefault("rating", 4)
        fields.setdefault("comment", "Solid work")
        return Review.objects.create(
            project=self.project,
            reviewer=reviewer or self.owner,
            reviewee=self.freelancer,
            **fields,
        )

    def test_average_category_rating_uses_scored_categories_only(self):
        """Test that unscored categories are ignored in the category average"""
        review = self.review(communication=5, quality=4, timeliness=None)
        self.assertEqual(review.average_category_rating, 4.5)

    def test_average_category_rating_falls_back_to_rating(self):
        """Test that the overall rating is used when no category is scored"""
        review = self.review(rating=3)
        self.assertEqual(review.average_category_rating, 3)

    def test_one_review_per_reviewer_reviewee_project(self):
        self.review()
        with self.assertRaises(IntegrityError):
            self.review()

    def test_user_average_rating(self):
        """Test average, total and distribution over public reviews"""
        other = User.objects.create_user(username="other")
        self.project.add_member(other)
        self.review(rating=5)
        self.review(reviewer=other, rating=4)

        summary = Review.user_average_rating(self.freelancer)

        self.assertEqual(summary["average_rating"], 4.5)
        self.assertEqual(summary["total_reviews"], 2)
        self.assertEqual(summary["rating_distribution"], [0, 0, 0, 1, 1])

    def test_user_average_rating_ignores_private_reviews(self):
        self.review(rating=1, is_public=False)

        summary = Review.user_average_rating(self.freelancer)

        self.assertEqual(summary["total_reviews"], 0)
        self.assertEqual(summary["average_rating"], 0)
