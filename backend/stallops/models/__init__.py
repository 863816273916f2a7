from .stalls import Stall
from .delivery import DeliveryZone
from .payroll import Payroll
from .investors import Investor
from .expenses import Expense
from .profit_loss import ProfitLossReport
from .inventory import InventoryBatch
from .performance import StallPerformance
from .orders import Order
from .audit import AuditEvent

__all__ = [
    'Stall', 'DeliveryZone', 'Payroll', 'Investor', 'Expense',
    'ProfitLossReport', 'InventoryBatch', 'StallPerformance', 'Order',
    'AuditEvent',
]
