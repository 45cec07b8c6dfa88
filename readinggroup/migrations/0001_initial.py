import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Member",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("name", models.CharField(blank=True, max_length=255)),
                ("is_admin", models.BooleanField(default=False)),
                ("upvoted_topics", models.JSONField(blank=True, default=list)),
                ("won_topics", models.JSONField(blank=True, default=list)),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("updated_on", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reading_group_member",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["email"],
            },
        ),
        migrations.CreateModel(
            name="Topic",
            fields=[
                (
                    "id",
                    models.AutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("text", models.TextField()),
                ("votes", models.PositiveIntegerField(default=0)),
                ("proposed_by", models.CharField(blank=True, max_length=254)),
                ("is_selected", models.BooleanField(default=False)),
                ("week_date", models.CharField(blank=True, max_length=64)),
                ("pdf_filename", models.CharField(blank=True, max_length=255)),
                ("pdf_original_name", models.CharField(blank=True, max_length=255)),
                ("pdf_path", models.CharField(blank=True, max_length=512)),
                ("upvoted_by", models.JSONField(blank=True, default=list)),
                ("won_by", models.JSONField(blank=True, default=list)),
                ("created_on", models.DateTimeField(auto_now_add=True)),
                ("updated_on", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-votes", "pk"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_selected", True)),
                        fields=("is_selected",),
                        name="single_selected_topic",
                    )
                ],
            },
        ),
    ]
