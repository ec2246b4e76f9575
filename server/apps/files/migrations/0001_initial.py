import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('public_id', models.CharField(help_text='Identifier used in URLs', max_length=128, unique=True)),
                ('physical_name', models.CharField(help_text='Object name in the storage backend', max_length=64, unique=True)),
                ('extension', models.CharField(blank=True, default='', max_length=16)),
                ('public_file_name', models.CharField(blank=True, help_text='Filename shown to downloaders', max_length=255, null=True)),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('is_private', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, help_text='Empty means the file never expires', null=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', '-created_at'], name='files_user_recent_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('size_bytes__gte', 0)), name='files_size_non_negative')],
            },
        ),
    ]
