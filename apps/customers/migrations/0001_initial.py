# Generated manually

import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('phone_number', models.CharField(help_text="Customer's phone number", max_length=20, unique=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('country', models.CharField(blank=True, default='', max_length=2)),
                ('birth_date', models.DateField(blank=True, null=True)),
                ('city', models.CharField(blank=True, default='', max_length=100)),
                ('street', models.CharField(blank=True, default='', max_length=200)),
                ('postal_code', models.CharField(blank=True, default='', max_length=20)),
                ('house_number', models.CharField(blank=True, default='', max_length=20)),
                ('preferred_food', models.TextField(blank=True, default='')),
                ('feedback', models.TextField(blank=True, default='')),
                ('discount_code', models.CharField(help_text='Promotional code issued after verification', max_length=20, unique=True)),
                ('is_verified', models.BooleanField(default=False, help_text='Both phone and email have been verified')),
                ('is_phone_verified', models.BooleanField(default=False)),
                ('is_email_verified', models.BooleanField(default=False)),
                ('phone_verification_code', models.CharField(blank=True, max_length=4, null=True)),
                ('email_verification_code', models.CharField(blank=True, max_length=4, null=True)),
                ('phone_code_sent_at', models.DateTimeField(blank=True, null=True)),
                ('email_code_sent_at', models.DateTimeField(blank=True, null=True)),
                ('consent_email', models.BooleanField(default=False)),
                ('consent_sms', models.BooleanField(default=False)),
                ('consent_given_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Customer',
                'verbose_name_plural': 'Customers',
                'db_table': 'customers',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='FormDraft',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('first_name', models.CharField(blank=True, max_length=100, null=True)),
                ('last_name', models.CharField(blank=True, max_length=100, null=True)),
                ('phone_number', models.CharField(blank=True, max_length=20, null=True)),
                ('email', models.CharField(blank=True, max_length=254, null=True)),
                ('country', models.CharField(blank=True, max_length=2, null=True)),
                ('birth_date', models.CharField(blank=True, help_text='Raw value typed into the form', max_length=32, null=True)),
                ('city', models.CharField(blank=True, max_length=100, null=True)),
                ('street', models.CharField(blank=True, max_length=200, null=True)),
                ('postal_code', models.CharField(blank=True, max_length=20, null=True)),
                ('house_number', models.CharField(blank=True, max_length=20, null=True)),
                ('preferred_food', models.TextField(blank=True, null=True)),
                ('feedback', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Form draft',
                'verbose_name_plural': 'Form drafts',
                'db_table': 'form_drafts',
                'ordering': ['-updated_at'],
            },
        ),
        migrations.AddIndex(
            model_name='customer',
            index=models.Index(fields=['created_at'], name='customers_created_idx'),
        ),
        migrations.AddIndex(
            model_name='formdraft',
            index=models.Index(fields=['updated_at'], name='form_drafts_updated_idx'),
        ),
    ]
