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
            name='DriverProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vehicle_number', models.CharField(max_length=20, unique=True)),
                ('vehicle_color', models.CharField(blank=True, default='', max_length=30)),
                ('vehicle_capacity', models.PositiveSmallIntegerField(default=1)),
                ('vehicle_class', models.CharField(choices=[('car', 'Car'), ('moto', 'Moto'), ('auto', 'Auto')], max_length=10)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='inactive', max_length=20)),
                ('current_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=10, null=True)),
                ('current_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=10, null=True)),
                ('last_location_update', models.DateTimeField(default=django.utils.timezone.now)),
                ('today_earnings', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('trips_today', models.PositiveIntegerField(default=0)),
                ('weekly_earnings', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('weekly_trips', models.PositiveIntegerField(default=0)),
                ('total_trips', models.PositiveIntegerField(default=0)),
                ('rating', models.DecimalField(decimal_places=1, default=4.5, max_digits=2)),
                ('avg_ride_time', models.PositiveIntegerField(default=25)),
                ('online_hours', models.PositiveIntegerField(default=0)),
                ('last_earnings_reset', models.DateTimeField(default=django.utils.timezone.now)),
                ('last_weekly_reset', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='driver_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'driver_profiles',
            },
        ),
        migrations.AddIndex(
            model_name='driverprofile',
            index=models.Index(fields=['status', 'vehicle_class'], name='driver_status_class_idx'),
        ),
        migrations.AddIndex(
            model_name='driverprofile',
            index=models.Index(fields=['current_latitude', 'current_longitude'], name='driver_location_idx'),
        ),
    ]
