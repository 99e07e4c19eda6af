"""Data models for an API documentation document.

The store, history ledger, importers and exporters all work on these
models. Attributes are snake_case; serialized keys keep the camelCase
names used by documents saved with earlier releases of the tool.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator

HttpVerb = Literal["GET", "POST", "PUT", "DELETE"]

DEFAULT_AUTH = "Authorization: Bearer Token"
DEFAULT_RULES = (
    'Every route requires an access token in the "Authorization" header using the '
    "Bearer scheme (Authorization: Bearer <token>). If the token is missing, expired, "
    "or its owner lacks the feature, the API responds with HTTP status 401."
)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BlockKind(str, Enum):
    """Tag for a method description block."""

    HEADER = "header"
    BODY = "body"
    QUERY = "query"
    MAPPING = "mapeamento"
    ENDPOINT = "endpoint"
    RETURN = "retorno"
    RETURN_MAPPING = "mapeamentoRetorno"


class ExampleKind(str, Enum):
    """Tag for a request/response example."""

    HEADER = "header"
    BODY = "body"
    QUERY = "query"
    RETURN = "retorno"


class DocModel(BaseModel):
    """Base for every entity: accepts attribute names or serialized keys."""

    model_config = ConfigDict(populate_by_name=True)


class InputParameter(DocModel):
    id: str = Field(default_factory=new_id)
    name: str = Field("", alias="nome")
    format: str = Field("char(16)", alias="formato")  # free-form, e.g. char(16)
    required: bool = Field(False, alias="obrigatorio")
    description: str = Field("", alias="descricao")


class OutputParameter(DocModel):
    id: str = Field(default_factory=new_id)
    name: str = Field("", alias="nome")
    type: str = Field("char(16)", alias="tipo")
    description: str = Field("", alias="descricao")


class Validation(DocModel):
    id: str = Field(default_factory=new_id)
    field_name: str = Field("", alias="nome")
    description: str = Field("", alias="descricao")


class DescriptionBlock(DocModel):
    id: str = Field(default_factory=new_id)
    kind: BlockKind = Field(BlockKind.MAPPING, alias="tipo")
    content: str = Field("", alias="conteudo")


class AuxiliaryValue(DocModel):
    code: str = Field("", alias="codigo")
    name: str = Field("", alias="nome")
    description: str = Field("", alias="descricao")


class AuxiliaryTable(DocModel):
    """Lookup table attached to a method (code / name / description rows)."""

    id: str = Field(default_factory=new_id)
    title: str = Field("", alias="titulo")
    values: list[AuxiliaryValue] = Field(default_factory=list, alias="valores")


class Example(DocModel):
    id: str = Field(default_factory=new_id)
    kind: ExampleKind = Field(ExampleKind.HEADER, alias="tipo")
    description: str | None = Field(None, alias="descricao")
    content: str = Field("", alias="conteudo")


class Method(DocModel):
    """One documented API operation."""

    id: str = Field(default_factory=new_id)
    name: str = Field("newMethod", alias="nome")
    purpose: str = Field("", alias="objetivo")
    http_verb: HttpVerb = Field("POST", alias="tipoHttp")
    input_parameters: list[InputParameter] = Field(default_factory=list, alias="parametrosEntrada")
    validations: list[Validation] = Field(default_factory=list, alias="validacoes")
    output_parameters: list[OutputParameter] = Field(default_factory=list, alias="parametrosSaida")
    description_blocks: list[DescriptionBlock] = Field(default_factory=list, alias="descricao")
    auxiliary_tables: list[AuxiliaryTable] = Field(default_factory=list, alias="tabelasAuxiliares")
    examples: list[Example] = Field(default_factory=list, alias="exemplos")


class Version(DocModel):
    """Semantic version triplet plus a build stamp (epoch milliseconds)."""

    major: NonNegativeInt = 1
    minor: NonNegativeInt = 0
    patch: NonNegativeInt = 0
    build: int = 0
    description: str | None = Field(None, alias="descricao")


class GeneralDescription(DocModel):
    auth: str = Field(DEFAULT_AUTH, alias="autenticacao")
    base_url: str = Field("", alias="urlBase")
    rules: str = Field(DEFAULT_RULES, alias="regras")


class Document(DocModel):
    """The single editable document: header section plus ordered methods."""

    id: str = Field(default_factory=new_id)
    resource_name: str = Field("", alias="nomeRecurso")
    version: Version = Field(default_factory=Version, alias="versao")
    general_description: GeneralDescription = Field(
        default_factory=GeneralDescription, alias="descricaoGeral"
    )
    methods: list[Method] = Field(default_factory=list, alias="metodos")
    created_at: datetime = Field(default_factory=utcnow, alias="criadoEm")
    updated_at: datetime = Field(default_factory=utcnow, alias="atualizadoEm")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps from hand-edited files are taken as UTC.
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    def find_method(self, method_id: str) -> Method | None:
        for method in self.methods:
            if method.id == method_id:
                return method
        return None


class HistoryEntry(DocModel):
    """Checkpoint: a deep copy of the document at save time."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_id)
    version: Version = Field(alias="versao")  # version before the save's increment
    document: Document = Field(alias="documento")
    timestamp: datetime = Field(default_factory=utcnow)
    author: str | None = Field(None, alias="autor")
    description: str = Field("", alias="descricao")
