import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import server.apps.accounts.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SignUpToken',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('token', models.CharField(max_length=128, unique=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('expires_at', models.DateTimeField(db_index=True)),
            ],
            options={
                'verbose_name': 'Sign-up Token',
                'verbose_name_plural': 'Sign-up Tokens',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='UserProfile',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='profile', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('token', models.CharField(default=server.apps.accounts.models.generate_api_token, help_text='API credential sent in the Authorization header', max_length=128, unique=True)),
                ('shortener', models.CharField(choices=[('random', 'random'), ('gfycat', 'gfycat'), ('zws', 'zws'), ('nanoid', 'nanoid'), ('timestamp', 'timestamp')], default='random', help_text='Generator used for public file ids and link tags', max_length=16)),
                ('embed_image_directly', models.BooleanField(default=False)),
                ('custom_embed_description', models.CharField(blank=True, max_length=255, null=True)),
            ],
            options={
                'verbose_name': 'User Profile',
                'verbose_name_plural': 'User Profiles',
            },
        ),
    ]
