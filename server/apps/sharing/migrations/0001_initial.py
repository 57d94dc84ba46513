import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('drive', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ShareLink',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('token', models.CharField(editable=False, help_text='Unguessable token used in share URLs', max_length=64, unique=True)),
                ('expires_at', models.DateTimeField(blank=True, help_text='Link stops resolving after this moment', null=True)),
                ('is_public', models.BooleanField(default=False, help_text='Anyone holding the token may access the file')),
                ('allowed_emails', models.JSONField(blank=True, default=list, help_text='Lower-cased emails allowed when the link is not public')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('file', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='share_links', to='drive.file')),
                ('user', models.ForeignKey(editable=False, on_delete=django.db.models.deletion.CASCADE, related_name='share_links', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Share Link',
                'verbose_name_plural': 'Share Links',
                'ordering': ['-created_at', 'id'],
                'indexes': [models.Index(fields=['user', 'file'], name='sharing_user_file_idx')],
            },
        ),
    ]
