"""
Menu engineering matrix and food-cost alerts.

Each menu item is placed by popularity (quantity sold in the range) and
per-plate profitability (net profit after labor) against the menu averages:

                      high popularity      low popularity
    high profit       Champion             Hidden Gem
    low profit        Volume Driver        Needs Review

"High" means at or above the average.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from django.db.models import Sum

from cogs.models import MenuItem
from cogs.services.costing_service import CostingService, MenuItemCostBreakdown
from core_backend.config import EngineConfig, get_engine_config
from core_backend.utils.money import ZERO, quantize_money
from reports.services.periods import DateRange
from sales.models import SalesRecord

logger = logging.getLogger(__name__)


CHAMPION = "Champion"
HIDDEN_GEM = "Hidden Gem"
VOLUME_DRIVER = "Volume Driver"
NEEDS_REVIEW = "Needs Review"


@dataclass
class MenuEngineeringRow:
    menu_item_id: Optional[int]
    name: str
    quantity_sold: int
    net_profit: Decimal
    total_profit: Decimal
    food_cost_percent: Optional[Decimal]
    classification: str


@dataclass
class MenuEngineeringReport:
    items: List[MenuEngineeringRow] = field(default_factory=list)
    average_quantity: Decimal = ZERO
    average_net_profit: Decimal = ZERO
    alerts: List[dict] = field(default_factory=list)

    def by_classification(self) -> Dict[str, List[MenuEngineeringRow]]:
        groups = {CHAMPION: [], HIDDEN_GEM: [], VOLUME_DRIVER: [], NEEDS_REVIEW: []}
        for row in self.items:
            groups[row.classification].append(row)
        return groups


def classify(quantity_sold, net_profit, average_quantity, average_net_profit) -> str:
    popular = quantity_sold >= average_quantity
    profitable = net_profit >= average_net_profit
    if popular and profitable:
        return CHAMPION
    if popular:
        return VOLUME_DRIVER
    if profitable:
        return HIDDEN_GEM
    return NEEDS_REVIEW


def food_cost_alerts(breakdowns: Iterable[MenuItemCostBreakdown]) -> List[dict]:
    """Items whose food cost exceeds their target, skipping unconfigured items."""
    return [
        {
            "menu_item_id": b.menu_item_id,
            "name": b.menu_item_name,
            "food_cost_percent": b.food_cost_percent,
            "target_cost_percent": b.target_cost_percent,
            "over_by": b.food_cost_percent - b.target_cost_percent,
        }
        for b in breakdowns
        if b.is_over_target
    ]


def build_menu_engineering(
    breakdowns: Iterable[MenuItemCostBreakdown],
    quantities: Dict[int, int],
) -> MenuEngineeringReport:
    breakdowns = list(breakdowns)
    report = MenuEngineeringReport(alerts=food_cost_alerts(breakdowns))
    if not breakdowns:
        return report

    count = Decimal(len(breakdowns))
    report.average_quantity = quantize_money(
        sum(Decimal(quantities.get(b.menu_item_id, 0)) for b in breakdowns) / count
    )
    report.average_net_profit = quantize_money(sum((b.net_profit for b in breakdowns), ZERO) / count)

    for b in breakdowns:
        sold = quantities.get(b.menu_item_id, 0)
        report.items.append(MenuEngineeringRow(
            menu_item_id=b.menu_item_id,
            name=b.menu_item_name,
            quantity_sold=sold,
            net_profit=b.net_profit,
            total_profit=quantize_money(b.net_profit * sold),
            food_cost_percent=b.food_cost_percent,
            classification=classify(sold, b.net_profit, report.average_quantity, report.average_net_profit),
        ))
    report.items.sort(key=lambda row: (-row.total_profit, row.name))
    return report


class MenuEngineeringService:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = get_engine_config(config)
        self._costing = CostingService(self.config)

    def build(self, start: date, end: date) -> MenuEngineeringReport:
        """Classify every active menu item using sales between ``start`` and ``end``."""
        date_range = DateRange(start, end)
        sold = (
            SalesRecord.objects.filter(date__gte=date_range.start, date__lte=date_range.end)
            .order_by()
            .values('menu_item_id')
            .annotate(total=Sum('quantity_sold'))
        )
        quantities = {row['menu_item_id']: row['total'] for row in sold}
        items = MenuItem.objects.prefetch_related('recipe_lines__ingredient').order_by('name')
        report = build_menu_engineering(
            (self._costing.compute_menu_item_cost(item) for item in items),
            quantities,
        )
        logger.info(
            f"Menu engineering {start} to {end}: {len(report.items)} item(s), {len(report.alerts)} alert(s)"
        )
        return report
