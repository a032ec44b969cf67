from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.utils import timezone
from apps.projects.models import Milestone, Project, ProjectCategory, ProjectStatus
from apps.tasks.models import Subtask, Task, TaskPriority, TaskStatus
import random
from datetime import timedelta

User = get_user_model()

FIRST_NAMES = [
    'Alice', 'Bob', 'Charlie', 'Diana', 'Eve', 'Frank', 'Grace', 'Henry',
    'Ivy', 'Jack', 'Kate', 'Liam', 'Mia', 'Noah', 'Olivia', 'Peter',
]

LAST_NAMES = [
    'Smith', 'Johnson', 'Williams', 'Brown', 'Jones', 'Garcia', 'Miller',
    'Davis', 'Rodriguez', 'Martinez', 'Wilson', 'Anderson', 'Moore',
]

SKILLS = ['python', 'django', 'react', 'figma', 'copywriting', 'sql', 'devops', 'swift']


class Command(BaseCommand):
    help = 'Seed the database with sample users, projects, milestones and tasks'

    def add_arguments(self, parser):
        parser.add_argument('--users', type=int, default=15, help='Number of users to create')
        parser.add_argument('--projects', type=int, default=6, help='Number of projects to create')
        parser.add_argument('--tasks', type=int, default=12, help='Tasks per project')

    def handle(self, *args, **options):
        self.stdout.write('Seeding database...')

        users = self.create_users(options['users'])
        projects = self.create_projects(users, options['projects'])
        tasks = self.create_tasks(projects, options['tasks'])
        milestones = self.create_milestones(projects)

        self.stdout.write(
            self.style.SUCCESS(
                f'\nSeed data created\n'
                f'Users: {len(users)}\n'
                f'Projects: {len(projects)}\n'
                f'Tasks: {len(tasks)}\n'
                f'Milestones: {len(milestones)}\n\n'
                f'Admin user: admin / admin123\n'
                f'Regular users: [username] / password123'
            )
        )

    def create_users(self, num_users):
        self.stdout.write('Creating users...')
        users = []

        admin, created = User.objects.get_or_create(
            username='admin',
            defaults={
                'email': 'admin@example.com',
                'first_name': 'Admin',
                'last_name': 'User',
                'is_staff': True,
                'is_superuser': True,
                'role': 'admin',
            }
        )
        if created:
            admin.set_password('admin123')
            admin.save()
        users.append(admin)

        for i in range(num_users):
            first_name = random.choice(FIRST_NAMES)
            last_name = random.choice(LAST_NAMES)
            username = f"{first_name.lower()}{last_name.lower()}{i}"

            user, created = User.objects.get_or_create(
                username=username,
                defaults={
                    'email': f"{username}@example.com",
                    'first_name': first_name,
                    'last_name': last_name,
                    'display_name': f"{first_name} {last_name}",
                    'skills': random.sample(SKILLS, 3),
                    'hourly_rate': random.choice([25, 40, 55, 80]),
                }
            )
            if created:
                user.set_password('password123')
                user.save()
            users.append(user)

        return users

    def create_projects(self, users, num_projects):
        self.stdout.write('Creating projects...')
        projects = []

        for i in range(num_projects):
            owner = random.choice(users)
            budget_min = random.choice([500, 1000, 2500])
            project = Project.objects.create(
                title=f"{random.choice(['Build', 'Redesign', 'Launch', 'Migrate'])} "
                      f"{random.choice(['storefront', 'mobile app', 'landing page', 'data pipeline'])} #{i + 1}",
                description='Sample project created by the seed command.',
                owner=owner,
                category=random.choice(ProjectCategory.values),
                status=random.choice([ProjectStatus.OPEN, ProjectStatus.IN_PROGRESS]),
                skills_required=random.sample(SKILLS, 2),
                budget_min=budget_min,
                budget_max=budget_min * 2,
                max_members=random.randint(3, 6),
            )

            others = [u for u in users if u.id != owner.id]
            for member in random.sample(others, min(len(others), project.max_members - 1)):
                project.add_member(member)

            projects.append(project)

        return projects

    def create_tasks(self, projects, per_project):
        self.stdout.write('Creating tasks...')
        tasks = []

        for project in projects:
            members = [m.user for m in project.memberships.select_related('user')]
            for i in range(per_project):
                task = Task.objects.create(
                    project=project,
                    title=f"{random.choice(['Implement', 'Fix', 'Review', 'Design', 'Write'])} "
                          f"{random.choice(['checkout', 'login', 'homepage', 'API', 'docs'])} {i + 1}",
                    description='Sample task.',
                    status=random.choice(TaskStatus.values),
                    priority=random.choice(TaskPriority.values),
                    assignee=random.choice(members) if random.random() > 0.2 else None,
                    created_by=project.owner,
                    deadline=timezone.now() + timedelta(days=random.randint(-3, 30)),
                    estimated_hours=random.randint(1, 16),
                    order=i,
                )

                for n in range(random.randint(0, 3)):
                    Subtask.objects.create(
                        task=task, title=f"Step {n + 1}", completed=random.random() > 0.5
                    )
                tasks.append(task)

        return tasks

    def create_milestones(self, projects):
        self.stdout.write('Creating milestones...')
        milestones = []

        for project in projects:
            tasks = list(project.tasks.all())
            for n in range(2):
                milestone = Milestone.objects.create(
                    project=project,
                    title=f"Milestone {n + 1}",
                    due_date=timezone.now() + timedelta(days=14 * (n + 1)),
                    order=n,
                )
                milestone.tasks.set(tasks[n::2])
                milestone.calculate_progress()
                milestone.save()
                milestones.append(milestone)

        return milestones
