"""Customer domain constants.

Closed sets of codes used by the Customer aggregate and its children
(contacts, addresses, identity documents).  Each choice carries an
external code and a human-readable label; ``lookup_by_code`` maps an
external code string back to a member.
"""

from __future__ import annotations

from typing import Optional, Type, TypeVar

from django.db import models

C = TypeVar("C", bound=models.TextChoices)

# Used as ``group_key`` for principal checks scoped to the whole owner.
NO_GROUPING = "__owner__"

DELETION_BLOCK_PREFIX = "Customer deleted: "

DEFAULT_NATIONALITY = "Brasileira"
DEFAULT_COUNTRY = "Brasil"


class DocumentType(models.TextChoices):
    CPF = "CPF", "CPF"
    CNPJ = "CNPJ", "CNPJ"


class CustomerCategory(models.TextChoices):
    CONSIGNOR = "CONSIGNANTE", "Consignor (sells)"
    BUYER = "COMPRADOR", "Buyer"
    BOTH = "AMBOS", "Sells and buys"
    PROSPECT = "PROSPECTO", "No transaction yet"
    PARTNER = "PARCEIRO", "Service partner"
    INACTIVE = "INATIVO", "Inactive"


class LeadSource(models.TextChoices):
    GOOGLE_ADS = "GOOGLE_ADS", "Google Ads"
    FACEBOOK_ADS = "FACEBOOK_ADS", "Facebook Ads"
    INSTAGRAM_ADS = "INSTAGRAM_ADS", "Instagram Ads"
    REFERRAL = "INDICACAO", "Referral"
    GOOGLE_ORGANIC = "GOOGLE_ORGANICO", "Google organic"
    SOCIAL_MEDIA = "REDES_SOCIAIS", "Social media"
    WHATSAPP = "WHATSAPP", "WhatsApp"
    WORD_OF_MOUTH = "BOCA_A_BOCA", "Word of mouth"
    INFLUENCER = "INFLUENCER", "Influencer"
    PARTNER = "PARCEIRO", "Partner"
    OTHER = "OUTRO", "Other"


class Gender(models.TextChoices):
    MALE = "M", "Male"
    FEMALE = "F", "Female"
    OTHER = "O", "Other"
    NOT_INFORMED = "N", "Not informed"


class ContactType(models.TextChoices):
    CELL = "CELULAR", "Cell phone"
    LANDLINE = "FIXO", "Landline"
    EMAIL = "EMAIL", "E-mail"
    WHATSAPP = "WHATSAPP", "WhatsApp"
    TELEGRAM = "TELEGRAM", "Telegram"
    OTHER = "OUTRO", "Other"


class AddressType(models.TextChoices):
    RESIDENTIAL = "RESIDENCIAL", "Residential"
    COMMERCIAL = "COMERCIAL", "Commercial"
    DELIVERY = "ENTREGA", "Delivery"
    BILLING = "COBRANCA", "Billing"
    PICKUP = "COLETA", "Pickup"


class IdentityDocumentType(models.TextChoices):
    CPF = "CPF", "Cadastro de Pessoa Física"
    RG = "RG", "Registro Geral"
    CNH = "CNH", "Carteira Nacional de Habilitação"
    PASSPORT = "PASSAPORTE", "Passaporte"
    CNPJ = "CNPJ", "Cadastro Nacional de Pessoa Jurídica"
    STATE_REGISTRATION = "IE", "Inscrição Estadual"
    MUNICIPAL_REGISTRATION = "IM", "Inscrição Municipal"
    BIRTH_CERTIFICATE = "CN", "Certidão de Nascimento"
    VOTER_ID = "TE", "Título de Eleitor"
    WORK_CARD = "CT", "Carteira de Trabalho"
    OTHER = "OUTRO", "Outro"


class DocumentStatus(models.TextChoices):
    VALID = "VALIDO", "Valid"
    EXPIRED = "EXPIRADO", "Expired"
    PENDING_VERIFICATION = "AGUARDANDO_VERIFICACAO", "Pending verification"
    VERIFIED = "VERIFICADO", "Verified"
    REJECTED = "REJEITADO", "Rejected"


class BrazilianState(models.TextChoices):
    AC = "AC", "Acre"
    AL = "AL", "Alagoas"
    AP = "AP", "Amapá"
    AM = "AM", "Amazonas"
    BA = "BA", "Bahia"
    CE = "CE", "Ceará"
    DF = "DF", "Distrito Federal"
    ES = "ES", "Espírito Santo"
    GO = "GO", "Goiás"
    MA = "MA", "Maranhão"
    MT = "MT", "Mato Grosso"
    MS = "MS", "Mato Grosso do Sul"
    MG = "MG", "Minas Gerais"
    PA = "PA", "Pará"
    PB = "PB", "Paraíba"
    PR = "PR", "Paraná"
    PE = "PE", "Pernambuco"
    PI = "PI", "Piauí"
    RJ = "RJ", "Rio de Janeiro"
    RN = "RN", "Rio Grande do Norte"
    RS = "RS", "Rio Grande do Sul"
    RO = "RO", "Rondônia"
    RR = "RR", "Roraima"
    SC = "SC", "Santa Catarina"
    SP = "SP", "São Paulo"
    SE = "SE", "Sergipe"
    TO = "TO", "Tocantins"


def lookup_by_code(choices: Type[C], code: Optional[str]) -> Optional[C]:
    """Return the member of *choices* whose code matches (case-insensitive).

    Unknown or empty codes return ``None``; callers decide whether that is
    an error.
    """
    if not code:
        return None
    wanted = code.strip().upper()
    for member in choices:
        if member.value.upper() == wanted:
            return member
    return None
