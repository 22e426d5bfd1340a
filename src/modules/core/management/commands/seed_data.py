from __future__ import annotations

import random
from datetime import date

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from validate_docbr import CNPJ, CPF

from modules.customers.constants import (
    AddressType,
    BrazilianState,
    ContactType,
    CustomerCategory,
    LeadSource,
)
from modules.customers.dtos import (
    CreateAddressDTO,
    CreateCompanyCustomerDTO,
    CreateContactDTO,
    CreateIndividualCustomerDTO,
)
from modules.customers.models import CompanyCustomer, IndividualCustomer
from modules.customers.views import build_customer_service

INDIVIDUALS = [
    ("Ana", "Souza", "ana@example.com", date(1988, 3, 14)),
    ("Bruno", "Lima", "bruno@example.com", date(1975, 11, 2)),
    ("Carla", "Mendes", "carla@example.com", date(1992, 6, 30)),
    ("Daniel", "Costa", "daniel@example.com", date(1969, 1, 21)),
    ("Fernanda", "Rocha", "fernanda@example.com", date(2000, 9, 9)),
    ("Gabriel", "Santos", "gabriel@example.com", date(1983, 12, 5)),
]

COMPANIES = [
    ("Mudanças Rápidas Ltda", "Mudança Já", "contato@mudancaja.example.com"),
    ("Antiquário Central ME", "Central Antigos", "vendas@central.example.com"),
    ("Guarda Móveis Sul S/A", "", "sac@guardasul.example.com"),
]

CITIES = [
    ("São Paulo", BrazilianState.SP, "01310-100"),
    ("Rio de Janeiro", BrazilianState.RJ, "20040-002"),
    ("Curitiba", BrazilianState.PR, "80010-000"),
    ("Belo Horizonte", BrazilianState.MG, "30130-010"),
]


class Command(BaseCommand):
    help = "Seed database with demo users and customers (valid generated CPF/CNPJ)."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")
        service = build_customer_service()

        users_created = self._seed_users()
        individuals = self._seed_individuals(service)
        companies = self._seed_companies(service)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"individuals={individuals}, "
                f"companies={companies}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="operator").exists():
            User.objects.create_user("operator", password="operator123", is_staff=True)
            created += 1
        return created

    def _seed_individuals(self, service) -> int:
        self.stdout.write("Creating individuals...")
        if IndividualCustomer.objects.alive().exists():
            self.stdout.write(self.style.WARNING("Individuals already seeded."))
            return 0

        generator = CPF()
        created = 0
        for first_name, last_name, email, birth_date in INDIVIDUALS:
            customer = service.create_individual(
                CreateIndividualCustomerDTO(
                    cpf=generator.generate(),
                    first_name=first_name,
                    last_name=last_name,
                    email=email,
                    birth_date=birth_date,
                    category=random.choice(
                        [CustomerCategory.BUYER, CustomerCategory.CONSIGNOR]
                    ),
                    lead_source=random.choice(list(LeadSource)),
                )
            )
            self._seed_records(service, customer.public_id, email)
            created += 1
        self.stdout.write(self.style.SUCCESS("Creating individuals... Done!"))
        return created

    def _seed_companies(self, service) -> int:
        self.stdout.write("Creating companies...")
        if CompanyCustomer.objects.alive().exists():
            self.stdout.write(self.style.WARNING("Companies already seeded."))
            return 0

        generator = CNPJ()
        representative = CPF()
        created = 0
        for legal_name, trade_name, email in COMPANIES:
            customer = service.create_company(
                CreateCompanyCustomerDTO(
                    cnpj=generator.generate(),
                    legal_name=legal_name,
                    trade_name=trade_name or None,
                    email=email,
                    representative_name="Responsável Legal",
                    representative_cpf=representative.generate(),
                    category=CustomerCategory.PARTNER,
                )
            )
            self._seed_records(service, customer.public_id, email)
            created += 1
        self.stdout.write(self.style.SUCCESS("Creating companies... Done!"))
        return created

    def _seed_records(self, service, public_id, email: str) -> None:
        city, state, postal_code = random.choice(CITIES)
        service.add_contact(
            public_id,
            CreateContactDTO(
                contact_type=ContactType.EMAIL, value=email, is_principal=True
            ),
        )
        service.add_contact(
            public_id,
            CreateContactDTO(
                contact_type=ContactType.CELL,
                value=f"119{random.randint(10000000, 99999999)}",
            ),
        )
        service.add_address(
            public_id,
            CreateAddressDTO(
                address_type=AddressType.RESIDENTIAL,
                postal_code=postal_code,
                street="Avenida Principal",
                number=str(random.randint(1, 2000)),
                district="Centro",
                city=city,
                state=state,
                is_principal=True,
            ),
        )
