# Customer confirmation requests
from django.db import migrations, models
import django.db.models.deletion
import staffing.utils


class Migration(migrations.Migration):

    dependencies = [
        ('staffing', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ConfirmationRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('token', models.CharField(default=staffing.utils.new_confirmation_token, editable=False, max_length=64, unique=True)),
                ('sent_to_email', models.EmailField(max_length=254)),
                ('sent_to_name', models.CharField(blank=True, max_length=200, null=True)),
                ('sent_at', models.DateTimeField(auto_now_add=True)),
                ('expires_at', models.DateTimeField(db_index=True, default=staffing.utils.default_confirmation_expiry)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('declined', 'Declined'), ('expired', 'Expired')], db_index=True, default='pending', max_length=16)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('decline_reason', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='auth.user')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='confirmation_requests', to='staffing.project')),
            ],
            options={
                'verbose_name': 'Confirmation request',
                'verbose_name_plural': 'Confirmation requests',
                'ordering': ['expires_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='ConfirmationRequestAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='staffing.assignment')),
                ('confirmation_request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='links', to='staffing.confirmationrequest')),
            ],
            options={
                'verbose_name': 'Confirmation request assignment',
                'verbose_name_plural': 'Confirmation request assignments',
                'constraints': [
                    models.UniqueConstraint(fields=('confirmation_request', 'assignment'), name='uniq_confirmation_assignment'),
                ],
            },
        ),
        migrations.AddField(
            model_name='confirmationrequest',
            name='assignments',
            field=models.ManyToManyField(related_name='confirmation_requests', through='staffing.ConfirmationRequestAssignment', to='staffing.assignment'),
        ),
    ]
