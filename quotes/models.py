"""
models.py — Quote data model

Dataclasses for the quote tree (Quote → QuoteOption → QuoteArea → QuoteItem),
labor categories and assigned resources, the technician / subcontractor
roster, and the computed QuoteTotals snapshot.

Documents coming from the persistence layer are camelCase; every entity
reads them with ``from_dict`` and writes them back with ``to_dict``.
Missing numbers read as 0 and missing lists as empty, the same way the
calculators treat them.

Entities are replaced, never mutated in place: editors use
``dataclasses.replace``.
"""

import logging
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums & Constants
# ---------------------------------------------------------------------------

WORK_DAY_HOURS = 8


class CustomerType(str, Enum):
    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"
    SCHOOL = "School"


class PricingModel(str, Enum):
    CUSTOM = "custom"     # user-set sell prices, markups and discount
    TIERED = "tiered"     # target margin by company-cost bracket


class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PENDING_CHANGES = "pending-changes"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class ExpirationTimeline(str, Enum):
    NEVER = "Never"
    DAYS_30 = "30 Days"
    DAYS_60 = "60 Days"
    DAYS_90 = "90 Days"


class ResourceKind(str, Enum):
    TECHNICIAN = "technician"         # costed hourly
    SUBCONTRACTOR = "subcontractor"   # costed per day


class TechnicianRole(str, Enum):
    ENGINEER = "Engineer"
    LEAD_TECH = "Lead Tech"
    INSTALL_TECH = "Install Tech"


LABOR_CATEGORY_IDS = ("design", "programming", "prewire", "install")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class QuoteError(Exception):
    """Base class for quote engine errors."""


class InvalidMarginError(QuoteError, ValueError):
    """Margin percentage outside [0, 100)."""


class InvalidMarkupError(QuoteError, ValueError):
    """Negative markup percentage."""


class UnknownResourceKindError(QuoteError, ValueError):
    """Roster entry is neither a technician nor a subcontractor."""


class InvalidNumberError(QuoteError, ValueError):
    """Numeric document field holds something that is not a number."""


class ResourceRosterError(QuoteError):
    """Roster file is missing or malformed."""


class QuoteNotEditableError(QuoteError):
    """Quote is sent, accepted or expired and can no longer be edited."""


class LastOptionError(QuoteError):
    """A quote must keep at least one option."""


class LastAreaError(QuoteError):
    """An option must keep at least one area."""


class OptionNotFoundError(QuoteError, KeyError):
    """No option with the given id."""


class AreaNotFoundError(QuoteError, KeyError):
    """No area with the given id."""


class InvalidStatusTransitionError(QuoteError):
    """Workflow action not allowed from the quote's current status."""


# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------

def _to_number(key: str, value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidNumberError(f"{key} must be a number, got {value!r}") from None


def _num(data: dict, key: str, default: float = 0) -> float:
    value = data.get(key)
    if value is None or value == "":
        return default
    return _to_number(key, value)


def _opt_num(data: dict, key: str) -> Optional[float]:
    value = data.get(key)
    if value is None or value == "":
        return None
    return _to_number(key, value)


def _enum(enum_cls, value, default):
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning("Unknown %s value %r, using %s", enum_cls.__name__, value, default.value)
        return default


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_document(obj: Any) -> Any:
    """Serialize a model (or list of models) to a camelCase document.

    Optional fields holding None are left out, matching how the
    persistence layer stores unset values.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        doc = {}
        for f in fields(obj):
            value = getattr(obj, f.name)
            if value is None:
                continue
            doc[_camel(f.name)] = to_document(value)
        return doc
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [to_document(v) for v in obj]
    if isinstance(obj, dict):
        return {k: to_document(v) for k, v in obj.items()}
    return obj


# ---------------------------------------------------------------------------
# Labor Resources
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Technician:
    id: str
    name: str
    cost_rate: float                          # hourly cost
    role: TechnicianRole = TechnicianRole.INSTALL_TECH
    kind: ResourceKind = field(default=ResourceKind.TECHNICIAN, init=False)

    def to_dict(self) -> dict:
        return to_document(self)


@dataclass(frozen=True)
class Subcontractor:
    id: str
    name: str
    cost_rate: float                          # daily cost
    kind: ResourceKind = field(default=ResourceKind.SUBCONTRACTOR, init=False)

    def to_dict(self) -> dict:
        return to_document(self)


LaborResource = Union[Technician, Subcontractor]


def resource_from_dict(data: dict) -> LaborResource:
    """Build a Technician or Subcontractor from a roster/document entry.

    The discriminator is ``kind``; documents written by older clients use
    ``type`` instead.
    """
    raw_kind = data.get("kind") or data.get("type")
    try:
        kind = ResourceKind(raw_kind)
    except ValueError:
        raise UnknownResourceKindError(
            f"Resource {data.get('id')!r} has unknown kind {raw_kind!r}"
        ) from None

    if kind is ResourceKind.TECHNICIAN:
        return Technician(
            id=str(data["id"]),
            name=data.get("name", ""),
            cost_rate=_num(data, "costRate"),
            role=_enum(TechnicianRole, data.get("role"), TechnicianRole.INSTALL_TECH),
        )
    return Subcontractor(
        id=str(data["id"]),
        name=data.get("name", ""),
        cost_rate=_num(data, "costRate"),
    )


@dataclass
class AssignedResource:
    resource_id: str

    @classmethod
    def from_dict(cls, data: dict) -> "AssignedResource":
        return cls(resource_id=str(data.get("resourceId", "")))


@dataclass
class AssignedSubcontractor:
    resource_id: str
    estimated_days: float = 0
    client_daily_rate: float = 0

    @classmethod
    def from_dict(cls, data: dict) -> "AssignedSubcontractor":
        return cls(
            resource_id=str(data.get("resourceId", "")),
            estimated_days=_num(data, "estimatedDays"),
            client_daily_rate=_num(data, "clientDailyRate"),
        )


# ---------------------------------------------------------------------------
# Labor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LaborCategoryTotals:
    customer_cost: float = 0.0
    company_cost: float = 0.0
    profit: float = 0.0
    gpm: float = 0.0


@dataclass
class LaborCategory:
    id: str                                   # design | programming | prewire | install
    name: str
    client_rate: float = 0                    # hourly, billed per technician
    estimated_tech_days: float = 0
    assigned_technicians: list[AssignedResource] = field(default_factory=list)
    assigned_subcontractors: list[AssignedSubcontractor] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "LaborCategory":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            client_rate=_num(data, "clientRate"),
            estimated_tech_days=_num(data, "estimatedTechDays"),
            assigned_technicians=[
                AssignedResource.from_dict(a) for a in data.get("assignedTechnicians") or []
            ],
            assigned_subcontractors=[
                AssignedSubcontractor.from_dict(a) for a in data.get("assignedSubcontractors") or []
            ],
        )

    def to_dict(self) -> dict:
        return to_document(self)


@dataclass
class SimpleLabor:
    num_days: float = 1
    rate: float = 100                         # hourly, billed per technician
    assigned_technicians: list[AssignedResource] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "SimpleLabor":
        return cls(
            num_days=_num(data, "numDays"),
            rate=_num(data, "rate"),
            assigned_technicians=[
                AssignedResource.from_dict(a) for a in data.get("assignedTechnicians") or []
            ],
        )


# ---------------------------------------------------------------------------
# Equipment
# ---------------------------------------------------------------------------

@dataclass
class Product:
    id: str
    name: str
    dealer_cost: float = 0
    msrp: float = 0
    description: str = ""
    model_number: str = ""
    category: str = ""
    brand: str = ""
    image_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(**_product_kwargs(data))


def _product_kwargs(data: dict) -> dict:
    return dict(
        id=str(data.get("id", "")),
        name=data.get("name", ""),
        dealer_cost=_num(data, "dealerCost"),
        msrp=_num(data, "msrp"),
        description=data.get("description", ""),
        model_number=data.get("modelNumber", ""),
        category=data.get("category", ""),
        brand=data.get("brand", ""),
        image_url=data.get("imageUrl", ""),
    )


@dataclass
class QuoteItem(Product):
    quantity: float = 1
    sell_price_override: Optional[float] = None   # None = sell at MSRP

    @property
    def sell_price(self) -> float:
        return self.sell_price_override if self.sell_price_override is not None else self.msrp

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteItem":
        return cls(
            **_product_kwargs(data),
            quantity=_num(data, "quantity"),
            sell_price_override=_opt_num(data, "sellPriceOverride"),
        )

    def to_dict(self) -> dict:
        return to_document(self)


@dataclass
class QuoteArea:
    id: str
    name: str
    items: list[QuoteItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteArea":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            items=[QuoteItem.from_dict(i) for i in data.get("items") or []],
        )


# ---------------------------------------------------------------------------
# Options & Quote
# ---------------------------------------------------------------------------

@dataclass
class QuoteOption:
    id: str
    name: str
    areas: list[QuoteArea] = field(default_factory=list)
    labor_categories: list[LaborCategory] = field(default_factory=list)
    scope_of_work: str = ""
    labor_sell_price_override: Optional[float] = None
    use_simple_labor: bool = False
    simple_labor: Optional[SimpleLabor] = None

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteOption":
        # A persisted "totals" key is a display cache and is not read back.
        simple = data.get("simpleLabor")
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            areas=[QuoteArea.from_dict(a) for a in data.get("areas") or []],
            labor_categories=[LaborCategory.from_dict(c) for c in data.get("laborCategories") or []],
            scope_of_work=data.get("scopeOfWork") or "",
            labor_sell_price_override=_opt_num(data, "laborSellPriceOverride"),
            use_simple_labor=bool(data.get("useSimpleLabor", False)),
            simple_labor=SimpleLabor.from_dict(simple) if simple else None,
        )

    def to_dict(self, totals: Optional["QuoteTotals"] = None) -> dict:
        doc = to_document(self)
        if totals is not None:
            doc["totals"] = totals.to_dict()
        return doc

    def all_items(self) -> list[QuoteItem]:
        return [item for area in self.areas for item in area.items]


@dataclass
class ChangeLogEntry:
    timestamp: str                            # ISO-8601
    description: str
    author: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeLogEntry":
        return cls(
            timestamp=data.get("timestamp", ""),
            description=data.get("description", ""),
            author=data.get("author"),
        )


@dataclass
class QuoteView:
    timestamp: str

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteView":
        return cls(timestamp=data.get("timestamp", ""))


@dataclass
class Quote:
    id: str
    options: list[QuoteOption]
    quote_number: str = ""
    quote_name: str = ""
    status: QuoteStatus = QuoteStatus.DRAFT
    customer_type_for_pricing: CustomerType = CustomerType.RESIDENTIAL
    pricing_model: PricingModel = PricingModel.CUSTOM

    # Global adjustments (percentages are 0–100)
    shipping_customer_percentage: float = 0
    shipping_company_percentage: float = 0
    tax_rate: float = 0
    discount_type: DiscountType = DiscountType.FIXED
    discount_value: float = 0

    # Send / accept workflow
    expiration_timeline: ExpirationTimeline = ExpirationTimeline.NEVER
    original_options_for_diff: list[QuoteOption] = field(default_factory=list)
    sent_at: Optional[str] = None
    expires_at: Optional[str] = None
    accepted_at: Optional[str] = None
    accepted_option_id: Optional[str] = None
    signature: Optional[str] = None
    revision_number: int = 0
    change_log: list[ChangeLogEntry] = field(default_factory=list)
    view_history: list[QuoteView] = field(default_factory=list)

    # Quote-specific subcontractors, merged into the resource registry
    subcontractors: list[Subcontractor] = field(default_factory=list)

    sales_rep: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Quote":
        options = [QuoteOption.from_dict(o) for o in data.get("options") or []]
        if not options:
            raise QuoteError(f"Quote {data.get('id')!r} has no options")
        subcontractors = []
        for s in data.get("subcontractors") or []:
            resource = resource_from_dict({"kind": ResourceKind.SUBCONTRACTOR.value, **s})
            if isinstance(resource, Subcontractor):
                subcontractors.append(resource)
            else:
                logger.warning(
                    "Quote %s: ignoring %s %r listed as a quote subcontractor",
                    data.get("id"), resource.kind.value, resource.id,
                )
        return cls(
            id=str(data.get("id", "")),
            options=options,
            quote_number=data.get("quoteNumber", ""),
            quote_name=data.get("quoteName", ""),
            status=_enum(QuoteStatus, data.get("status"), QuoteStatus.DRAFT),
            customer_type_for_pricing=_enum(
                CustomerType, data.get("customerTypeForPricing"), CustomerType.RESIDENTIAL
            ),
            pricing_model=_enum(PricingModel, data.get("pricingModel"), PricingModel.CUSTOM),
            shipping_customer_percentage=_num(data, "shippingCustomerPercentage"),
            shipping_company_percentage=_num(data, "shippingCompanyPercentage"),
            tax_rate=_num(data, "taxRate"),
            discount_type=_enum(DiscountType, data.get("discountType"), DiscountType.FIXED),
            discount_value=_num(data, "discountValue"),
            expiration_timeline=_enum(
                ExpirationTimeline, data.get("expirationTimeline"), ExpirationTimeline.NEVER
            ),
            original_options_for_diff=[
                QuoteOption.from_dict(o) for o in data.get("originalOptionsForDiff") or []
            ],
            sent_at=data.get("sentAt"),
            expires_at=data.get("expiresAt"),
            accepted_at=data.get("acceptedAt"),
            accepted_option_id=data.get("acceptedOptionId"),
            signature=data.get("signature"),
            revision_number=int(_num(data, "revisionNumber")),
            change_log=[ChangeLogEntry.from_dict(e) for e in data.get("changeLog") or []],
            view_history=[QuoteView.from_dict(v) for v in data.get("viewHistory") or []],
            subcontractors=subcontractors,
            sales_rep=data.get("salesRep"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict:
        return to_document(self)

    def get_option(self, option_id: str) -> QuoteOption:
        for option in self.options:
            if option.id == option_id:
                return option
        raise OptionNotFoundError(option_id)


# ---------------------------------------------------------------------------
# Computed totals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QuoteTotals:
    material_cost: float = 0.0
    labor_cost: float = 0.0
    total_company_cost: float = 0.0
    customer_price: float = 0.0               # subtotal before discount
    discount: float = 0.0
    tax: float = 0.0
    final_price: float = 0.0
    margin_percentage: float = 0.0
    material_sell_price: float = 0.0
    labor_sell_price: float = 0.0
    shipping_charge: float = 0.0
    first_invoice: float = 0.0
    second_invoice: float = 0.0

    @classmethod
    def zero(cls) -> "QuoteTotals":
        return cls()

    def to_dict(self) -> dict:
        return to_document(self)
