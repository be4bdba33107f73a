# opd_core/pharmacy/api/serializers.py
from __future__ import annotations

from rest_framework import serializers


class AddStockSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    stock = serializers.IntegerField(min_value=1)
    supplier_info = serializers.CharField(required=False, allow_blank=True, default="")


class MedicineBatchSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    supplier_info = serializers.CharField(allow_blank=True)
    quantity_received = serializers.IntegerField()
    quantity_remaining = serializers.IntegerField()
    received_at = serializers.DateTimeField()


class MedicineSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    totalStock = serializers.IntegerField(source="total_stock")
    batches = MedicineBatchSerializer(many=True)
