from django.db import models


class Material(models.Model):
    """Material master (M.SAND, 20MM, GSB ...), referenced by runs and orders"""
    name = models.CharField(max_length=200, unique=True)
    uom = models.CharField(max_length=20, help_text='Unit of measure, e.g. MT, CFT, LOAD')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.uom})"

    def is_referenced(self):
        """True once any crusher run or order points at this material"""
        return (
            self.crusher_runs.exists()
            or self.sales_orders.exists()
            or self.purchase_orders.exists()
        )

    class Meta:
        db_table = 'materials'
        ordering = ['name']
