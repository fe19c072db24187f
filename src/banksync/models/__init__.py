"""Database models."""
from banksync.models.connected_bank import ConnectedBank
from banksync.models.bank_account import BankAccount
from banksync.models.transaction import Transaction
from banksync.models.category_override import CategoryOverride

__all__ = ["ConnectedBank", "BankAccount", "Transaction", "CategoryOverride"]
