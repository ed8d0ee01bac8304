"""
MIGRATION: link StockBatch to the purchase that received it.

Kept separate from 0001 because purchases.PurchaseItem itself points
back at products.StockBatch.
"""

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("products", "0001_initial"),
        ("purchases", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="stockbatch",
            name="purchase",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="batches",
                to="purchases.purchase",
            ),
        ),
        migrations.AddIndex(
            model_name="stockbatch",
            index=models.Index(fields=["purchase"], name="batch_purchase_idx"),
        ),
    ]
