import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import drive.apps.storage.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StorageQuota',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='storage_quota', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('quota_bytes', models.BigIntegerField(default=1073741824, help_text='Storage quota limit in bytes')),
                ('used_bytes', models.BigIntegerField(default=0, help_text='Currently used storage in bytes')),
            ],
            options={
                'verbose_name': 'Storage Quota',
                'verbose_name_plural': 'Storage Quotas',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quota_bytes__gte', 0)), name='storage_quota_bytes_non_negative'),
                    models.CheckConstraint(condition=models.Q(('used_bytes__gte', 0)), name='storage_used_bytes_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Tag',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('color', models.CharField(blank=True, default='', help_text='Hex color code for UI display (e.g., #FF5733)', max_length=7)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tags', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Tag',
                'verbose_name_plural': 'Tags',
                'ordering': ['name'],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'name'), name='tags_user_name_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, validators=[drive.apps.storage.validators.validate_folder_name])),
                ('description', models.CharField(blank=True, default='', max_length=500)),
                ('path', models.CharField(help_text='Materialized path: parent.path/name, or name at root', max_length=4096)),
                ('is_favorite', models.BooleanField(default=False)),
                ('color', models.CharField(default='#3B82F6', max_length=7, validators=[drive.apps.storage.validators.validate_color])),
                ('item_count', models.PositiveIntegerField(default=0, help_text='Direct subfolders, files and notes')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='subfolders', to='storage.folder')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='folders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'parent'], name='folders_user_parent_idx'),
                    models.Index(fields=['user', 'path'], name='folders_user_path_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'parent', 'name'), name='folders_user_parent_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('parent__isnull', True)), fields=('user', 'name'), name='folders_user_root_name_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('file', models.FileField(help_text='Key in storage: {user_id}/{unique}.ext', max_length=255, upload_to='')),
                ('original_name', models.CharField(max_length=255)),
                ('file_type', models.CharField(choices=[('image', 'Image'), ('pdf', 'PDF'), ('document', 'Document'), ('other', 'Other')], default='other', max_length=16)),
                ('mime_type', models.CharField(max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('checksum_sha256', models.CharField(db_index=True, help_text='SHA256 hash for integrity verification', max_length=64)),
                ('is_favorite', models.BooleanField(default=False)),
                ('description', models.CharField(blank=True, default='', max_length=500)),
                ('download_count', models.PositiveIntegerField(default=0)),
                ('last_accessed', models.DateTimeField(auto_now_add=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='files', to='storage.folder')),
                ('tags', models.ManyToManyField(blank=True, related_name='files', to='storage.tag')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'file_type'], name='files_user_type_idx'),
                    models.Index(fields=['user', 'folder'], name='files_user_folder_idx'),
                    models.Index(fields=['user', 'is_favorite'], name='files_user_favorite_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('file',), name='files_storage_key_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Note',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('content', models.TextField()),
                ('is_favorite', models.BooleanField(default=False)),
                ('is_pinned', models.BooleanField(default=False)),
                ('color', models.CharField(default='#FEF3C7', max_length=7, validators=[drive.apps.storage.validators.validate_color])),
                ('last_accessed', models.DateTimeField(auto_now_add=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='notes', to='storage.folder')),
                ('tags', models.ManyToManyField(blank=True, related_name='notes', to='storage.tag')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Note',
                'verbose_name_plural': 'Notes',
                'ordering': ['-is_pinned', '-updated_at'],
                'indexes': [
                    models.Index(fields=['user', 'folder'], name='notes_user_folder_idx'),
                    models.Index(fields=['user', '-is_pinned', '-updated_at'], name='notes_user_pinned_idx'),
                ],
            },
        ),
    ]
