# Services module

from stockroom.services.stock_service import StockService, append_movement
from stockroom.services.order_service import OrderService, ORDER_STATUS_TRANSITIONS
from stockroom.services.backorder_service import BackorderService
from stockroom.services.preparation_service import PreparationService
from stockroom.services.alert_service import AlertService, compute_alerts, run_alert_scan
from stockroom.services.automation_service import AutomationService
from stockroom.services.transfer_service import TransferService
