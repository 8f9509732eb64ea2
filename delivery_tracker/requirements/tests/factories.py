from factory import Faker
from factory import LazyFunction
from factory import SubFactory
from factory.django import DjangoModelFactory

from delivery_tracker.requirements.models import RequirementTemplate
from delivery_tracker.requirements.rules import parse_rules
from delivery_tracker.users.tests.factories import UserFactory


class RequirementTemplateFactory(DjangoModelFactory):
    name = Faker("bs")
    description = ""
    rules = LazyFunction(lambda: parse_rules({"require_signature_at_delivery": True}))
    active = True
    created_by = SubFactory(UserFactory)

    class Meta:
        model = RequirementTemplate
