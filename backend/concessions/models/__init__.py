from .catalog import Program, MenuItem, MenuItemComponent
from .inventory import InventoryLot, LotConsumption, InventoryTransaction, InventoryCount
from .purchases import Purchase, PurchaseLine, PurchaseTemplate, PurchaseTemplateLine
from .sessions import ConcessionSession, MainCashbox
from .orders import Order, OrderLine
from .ledgers import (
    ProgramTransaction,
    ProfitDistribution,
    Loss,
    CashAppAccount,
    CashAppTransaction,
    ZellePayment,
    ReimbursementEntry,
)

__all__ = [
    'Program', 'MenuItem', 'MenuItemComponent',
    'InventoryLot', 'LotConsumption', 'InventoryTransaction', 'InventoryCount',
    'Purchase', 'PurchaseLine', 'PurchaseTemplate', 'PurchaseTemplateLine',
    'ConcessionSession', 'MainCashbox',
    'Order', 'OrderLine',
    'ProgramTransaction', 'ProfitDistribution', 'Loss',
    'CashAppAccount', 'CashAppTransaction', 'ZellePayment', 'ReimbursementEntry',
]
