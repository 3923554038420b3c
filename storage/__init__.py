"""Store backends behind the BulkStore protocol."""
