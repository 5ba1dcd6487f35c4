from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("eb_tagging", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="tagrebuildtask",
            name="custom_tags_reparented",
            field=models.PositiveIntegerField(default=0),
        ),
    ]
