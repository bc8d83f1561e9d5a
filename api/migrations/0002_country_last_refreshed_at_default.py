import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('api', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='country',
            name='last_refreshed_at',
            field=models.DateTimeField(default=django.utils.timezone.now),
        ),
    ]
