# Initial migration for staffing app
from django.db import migrations, models
import django.db.models.deletion
import staffing.utils


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, max_length=200)),
                ('start_date', models.DateField(blank=True, db_index=True, null=True)),
                ('end_date', models.DateField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Project',
                'verbose_name_plural': 'Projects',
                'ordering': ['name'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('start_date__isnull', True), ('end_date__isnull', True), ('end_date__gte', models.F('start_date')), _connector='OR'),
                        name='chk_project_dates',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Assignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_status', models.CharField(choices=[('tentative', 'Tentative'), ('pending_confirmation', 'Pending Confirmation'), ('confirmed', 'Confirmed')], db_index=True, default='tentative', max_length=24)),
                ('notes', models.TextField(blank=True, null=True)),
                ('uses_day_model', models.BooleanField(default=True, help_text='False for legacy assignments scheduled as project span minus excluded dates.')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='auth.user')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='staffing.project')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='auth.user')),
            ],
            options={
                'verbose_name': 'Assignment',
                'verbose_name_plural': 'Assignments',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['user', 'booking_status'], name='assignment_user_status_idx'),
                    models.Index(fields=['project', 'booking_status'], name='assignment_project_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('project', 'user'), name='uniq_assignment_project_user'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AssignmentDay',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('work_date', models.DateField(db_index=True)),
                ('start_time', models.TimeField(default=staffing.utils.default_day_start)),
                ('end_time', models.TimeField(default=staffing.utils.default_day_end)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='days', to='staffing.assignment')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='auth.user')),
            ],
            options={
                'verbose_name': 'Assignment day',
                'verbose_name_plural': 'Assignment days',
                'ordering': ['work_date'],
                'indexes': [
                    models.Index(fields=['work_date', 'assignment'], name='assignment_day_date_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('assignment', 'work_date'), name='uniq_assignment_day_date'),
                    models.CheckConstraint(condition=models.Q(('end_time__gt', models.F('start_time'))), name='chk_day_time_order'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AssignmentExcludedDate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('excluded_date', models.DateField(db_index=True)),
                ('reason', models.CharField(blank=True, max_length=500, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='excluded_dates', to='staffing.assignment')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='auth.user')),
            ],
            options={
                'verbose_name': 'Excluded date',
                'verbose_name_plural': 'Excluded dates',
                'ordering': ['excluded_date'],
                'constraints': [
                    models.UniqueConstraint(fields=('assignment', 'excluded_date'), name='uniq_excluded_date_assignment'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BookingConflict',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('conflict_date', models.DateField(db_index=True)),
                ('override_reason', models.CharField(blank=True, max_length=500, null=True)),
                ('overridden_at', models.DateTimeField(blank=True, null=True)),
                ('is_resolved', models.BooleanField(db_index=True, default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assignment', models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='staffing.assignment')),
                ('conflicting_assignment', models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='staffing.assignment')),
                ('overridden_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='auth.user')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='booking_conflicts', to='auth.user')),
            ],
            options={
                'verbose_name': 'Booking conflict',
                'verbose_name_plural': 'Booking conflicts',
                'ordering': ['conflict_date', 'id'],
                'indexes': [
                    models.Index(fields=['user', 'is_resolved'], name='conflict_user_resolved_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BookingStatusHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('old_status', models.CharField(blank=True, choices=[('tentative', 'Tentative'), ('pending_confirmation', 'Pending Confirmation'), ('confirmed', 'Confirmed')], max_length=24, null=True)),
                ('new_status', models.CharField(choices=[('tentative', 'Tentative'), ('pending_confirmation', 'Pending Confirmation'), ('confirmed', 'Confirmed')], max_length=24)),
                ('note', models.CharField(blank=True, max_length=500, null=True)),
                ('changed_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('assignment', models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='staffing.assignment')),
                ('changed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='auth.user')),
            ],
            options={
                'verbose_name': 'Booking status change',
                'verbose_name_plural': 'Booking status history',
                'ordering': ['changed_at', 'id'],
                'indexes': [
                    models.Index(fields=['assignment', 'changed_at'], name='history_assignment_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(db_index=True, max_length=50)),
                ('table', models.CharField(db_index=True, max_length=50)),
                ('record_id', models.CharField(max_length=50)),
                ('before', models.JSONField(blank=True, null=True)),
                ('after', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('author', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='auth.user')),
            ],
            options={
                'verbose_name': 'Audit entry',
                'verbose_name_plural': 'Audit log',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['table', 'created_at'], name='audit_table_created_idx'),
                    models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
                ],
            },
        ),
    ]
