from django.db import migrations, models


def deal_row_fields():
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('deal_id', models.CharField(max_length=32, unique=True)),
        ('title', models.CharField(blank=True, max_length=255)),
        ('value', models.BigIntegerField(default=0)),
        ('currency', models.CharField(default='BRL', max_length=8)),
        ('status', models.CharField(blank=True, max_length=16, null=True)),
        ('stage_id', models.CharField(blank=True, max_length=32, null=True)),
        ('contact_id', models.CharField(blank=True, max_length=32, null=True)),
        ('organization_id', models.CharField(blank=True, max_length=32, null=True)),
        ('created_date', models.DateTimeField(blank=True, null=True)),
        ('api_updated_at', models.DateTimeField(blank=True, null=True)),
        ('last_synced_at', models.DateTimeField()),
        ('sync_status', models.CharField(default='synced', max_length=16)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='DealCache',
            fields=deal_row_fields() + [
                ('closing_date', models.DateField(blank=True, db_index=True, null=True)),
                ('estado', models.CharField(blank=True, max_length=255, null=True)),
                ('quantidade_pares', models.CharField(blank=True, max_length=255, null=True)),
                ('vendedor', models.CharField(blank=True, max_length=255, null=True)),
                ('designer', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_source', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_medium', models.CharField(blank=True, max_length=255, null=True)),
                ('custom_field_54', models.CharField(blank=True, max_length=255, null=True)),
            ],
            options={
                'db_table': 'deals_cache',
            },
        ),
        migrations.CreateModel(
            name='DealLive',
            fields=deal_row_fields() + [
                ('closing_date', models.DateField(blank=True, db_index=True, null=True)),
            ],
            options={
                'db_table': 'deals_live',
            },
        ),
        migrations.CreateModel(
            name='ProgramacaoCache',
            fields=deal_row_fields() + [
                ('data_embarque', models.CharField(blank=True, max_length=255, null=True)),
                ('estado', models.CharField(blank=True, max_length=255, null=True)),
                ('quantidade_pares', models.CharField(blank=True, max_length=255, null=True)),
                ('vendedor', models.CharField(blank=True, max_length=255, null=True)),
                ('designer', models.CharField(blank=True, max_length=255, null=True)),
            ],
            options={
                'db_table': 'programacao_cache',
            },
        ),
        migrations.CreateModel(
            name='ProductCache',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=32, unique=True)),
                ('name_pt', models.CharField(blank=True, max_length=255, null=True)),
                ('brand', models.CharField(blank=True, max_length=255, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('handle', models.CharField(blank=True, max_length=255, null=True)),
                ('price', models.BigIntegerField(default=0)),
                ('variant_count', models.IntegerField(default=0)),
                ('featured_image_src', models.CharField(blank=True, max_length=500, null=True)),
                ('published', models.BooleanField(default=False)),
                ('free_shipping', models.BooleanField(default=False)),
                ('api_updated_at', models.DateTimeField(blank=True, null=True)),
                ('last_synced_at', models.DateTimeField()),
                ('sync_status', models.CharField(default='synced', max_length=16)),
            ],
            options={
                'db_table': 'nuvemshop_products',
            },
        ),
        migrations.CreateModel(
            name='SyncLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sync_type', models.CharField(max_length=32)),
                ('sync_started_at', models.DateTimeField()),
                ('sync_completed_at', models.DateTimeField(blank=True, null=True)),
                ('sync_status', models.CharField(choices=[('running', 'Running'), ('completed', 'Completed'), ('failed', 'Failed')], default='running', max_length=16)),
                ('records_processed', models.IntegerField(default=0)),
                ('records_upserted', models.IntegerField(default=0)),
                ('error_count', models.IntegerField(default=0)),
                ('error_message', models.TextField(blank=True)),
                ('sync_duration_seconds', models.IntegerField(blank=True, null=True)),
            ],
            options={
                'db_table': 'sync_log',
                'ordering': ['-sync_started_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='synclog',
            constraint=models.UniqueConstraint(condition=models.Q(('sync_status', 'running')), fields=('sync_type',), name='one_running_sync_per_type'),
        ),
    ]
