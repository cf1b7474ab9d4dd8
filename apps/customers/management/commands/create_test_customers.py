"""
Management command to create test data for the customer registry
"""
import random

from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.customers.models import Customer, FormDraft
from apps.customers.services import DiscountCodeService
from apps.messaging.models import MessageSubscription

FIRST_NAMES = ['Anna', 'Lukas', 'Mia', 'Jonas', 'Lea', 'Felix', 'Emma', 'Paul']
LAST_NAMES = ['Schmidt', 'Mueller', 'Weber', 'Fischer', 'Wagner', 'Becker']
FOODS = ['Pizza', 'Pasta', 'Sushi', 'Burger', 'Salad']


class Command(BaseCommand):
    help = 'Create test customers and drafts'

    def add_arguments(self, parser):
        parser.add_argument(
            '--customers',
            type=int,
            default=10,
            help='Number of customers to create (default: 10)'
        )
        parser.add_argument(
            '--phone-prefix',
            type=str,
            default='+4915550000',
            help='Phone number prefix (default: +4915550000)'
        )
        parser.add_argument(
            '--drafts',
            type=int,
            default=3,
            help='Number of in-progress drafts to create (default: 3)'
        )

    def handle(self, *args, **options):
        num_customers = options['customers']
        phone_prefix = options['phone_prefix']

        self.stdout.write(self.style.SUCCESS(f'Creating {num_customers} test customers...'))

        verified_count = 0
        for i in range(num_customers):
            phone_number = f"{phone_prefix}{i:02d}"
            if Customer.objects.filter(phone_number=phone_number).exists():
                self.stdout.write(self.style.WARNING(f'  Customer already exists: {phone_number}'))
                continue

            # Every other customer is fully verified with consent
            verified = i % 2 == 0
            first_name = random.choice(FIRST_NAMES)
            customer = Customer.objects.create(
                first_name=first_name,
                last_name=random.choice(LAST_NAMES),
                phone_number=phone_number,
                email=f"{first_name.lower()}.{i}@example.com",
                country='DE',
                city='Berlin',
                street='Hauptstrasse',
                house_number=str(i + 1),
                postal_code='10115',
                preferred_food=random.choice(FOODS),
                discount_code=DiscountCodeService.generate_unique_discount_code(),
                is_phone_verified=verified,
                is_email_verified=verified,
                is_verified=verified,
                consent_email=verified,
                consent_sms=verified,
                consent_given_at=timezone.now() if verified else None,
            )

            if verified:
                MessageSubscription.objects.create(customer=customer, subscribed=True)
                verified_count += 1

            self.stdout.write(self.style.SUCCESS(f'  Created customer: {phone_number}'))

        for i in range(options['drafts']):
            FormDraft.objects.create(
                first_name=random.choice(FIRST_NAMES),
                phone_number=f"{phone_prefix}9{i}",
            )

        self.stdout.write(self.style.SUCCESS('\nTest data created successfully!'))
        self.stdout.write(self.style.SUCCESS(f'   - Verified customers: {verified_count}'))
        self.stdout.write(self.style.SUCCESS(f'   - Drafts: {options["drafts"]}'))
