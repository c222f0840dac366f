from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="orderevent",
            name="kind",
            field=models.CharField(choices=[("item.added", "Item Added"), ("item.removed", "Item Removed"), ("order.status_changed", "Status Changed"), ("seat.session.started", "Seat Session Started"), ("seat.session.ended", "Seat Session Ended"), ("seat.transferred", "Seat Transferred"), ("payment.completed", "Payment Completed"), ("order.voided", "Order Voided"), ("game.assigned", "Game Assigned")], max_length=30),
        ),
    ]
