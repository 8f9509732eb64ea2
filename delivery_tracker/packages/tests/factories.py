from factory import Faker
from factory import Sequence
from factory.django import DjangoModelFactory

from delivery_tracker.packages.models import Package


class PackageFactory(DjangoModelFactory):
    barcode = Sequence(lambda n: f"PKG-{n:05d}")
    status = Package.Status.PENDING
    recipient_name = Faker("name")
    recipient_phone = Faker("msisdn")
    recipient_email = Faker("email")
    recipient_address = Faker("address")

    class Meta:
        model = Package
