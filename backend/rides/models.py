from django.db import models
from django.conf import settings
from django.db.models import Q

from drivers.models import VehicleClass


class Ride(models.Model):
    """A single ride from request to completion or cancellation."""

    PENDING = 'pending'
    ACCEPTED = 'accepted'
    ONGOING = 'ongoing'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
        (ONGOING, 'Ongoing'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    ]

    # Allowed edges of the status graph; completed/cancelled are terminal.
    TRANSITIONS = {
        PENDING: {ACCEPTED, CANCELLED},
        ACCEPTED: {ONGOING, CANCELLED},
        ONGOING: {COMPLETED, CANCELLED},
        COMPLETED: set(),
        CANCELLED: set(),
    }

    ACTIVE_STATUSES = (PENDING, ACCEPTED, ONGOING)

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('wallet', 'Wallet'),
        ('razorpay', 'Razorpay'),
        ('phonepe', 'PhonePe'),
        ('cash', 'Cash'),
        ('upi', 'UPI'),
        ('card', 'Card'),
        ('netbanking', 'Net banking'),
    ]

    # Parties
    rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='rides'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='driven_rides'
    )

    # Locations (free text; coordinates kept when the rider sent them)
    pickup = models.CharField(max_length=255)
    destination = models.CharField(max_length=255)
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    vehicle_class = models.CharField(max_length=10, choices=VehicleClass.choices)

    # Pricing
    fare = models.DecimalField(max_digits=10, decimal_places=2)
    waiting_charges = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_fare = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    distance = models.FloatField(null=True, blank=True)  # km
    duration = models.PositiveIntegerField(null=True, blank=True)  # minutes

    otp = models.CharField(max_length=6)

    # Status & payment
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    payment_id = models.CharField(max_length=100, null=True, blank=True)
    wallet_linked = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.TextField(null=True, blank=True)

    # Feedback
    rating = models.PositiveSmallIntegerField(null=True, blank=True)
    review = models.TextField(null=True, blank=True)

    class Meta:
        db_table = 'rides'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='ride_status_created_idx'),
            models.Index(fields=['driver', 'rating'], name='ride_driver_rating_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(waiting_charges__gte=0), name='ride_waiting_charges_non_negative'),
            models.CheckConstraint(
                condition=Q(rating__isnull=True) | Q(rating__gte=1, rating__lte=5),
                name='ride_rating_between_1_and_5',
            ),
        ]

    def __str__(self):
        return f"Ride #{self.id} - {self.rider} - {self.status}"

    @classmethod
    def can_transition(cls, current: str, new: str) -> bool:
        return new in cls.TRANSITIONS.get(current, set())


class RideOffer(models.Model):
    """Records which drivers were pushed a ride-request event."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('taken', 'Taken by another driver'),
        ('withdrawn', 'Withdrawn'),
    ]

    ride = models.ForeignKey(
        Ride,
        on_delete=models.CASCADE,
        related_name='offers'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_offers'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    sent_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'ride_offers'
        ordering = ['sent_at']
        constraints = [
            models.UniqueConstraint(
                fields=['ride', 'driver'],
                name='unique_ride_driver'
            )
        ]

    def __str__(self):
        return f"Offer #{self.id} - Ride {self.ride_id} -> Driver {self.driver_id}"
