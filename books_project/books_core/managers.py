from django.db import models

# -----------------------------------------
# Enforce owner scoping across all models
# that belong to a user
# -----------------------------------------
class OwnerQuerySet(models.QuerySet):
    def for_owner(self, owner):         # Add queryset helper
        return self.filter(owner=owner) # Apply filter


class DocumentQuerySet(OwnerQuerySet):
    # Real documents only, recurring templates are left out of totals
    def non_templates(self):
        return self.filter(has_recurring_schedule=False)

    # Enables query:
    # Invoice.objects.for_owner(user).non_templates()


class ScheduleQuerySet(OwnerQuerySet):
    def active(self):
        return self.filter(is_active=True)

    def due(self, reference_date):
        # Same predicate as schedule.is_due(), pushed down to SQL
        return self.filter(is_active=True, next_occurrence__lte=reference_date)


# Attach the querysets to .objects
class OwnerManager(models.Manager):

    def get_queryset(self): # every model gets OwnerQuerySet (so .for_owner() is always available)
        return OwnerQuerySet(self.model, using=self._db)

    def for_owner(self, owner): # can call for_owner() directly on objects
        return self.get_queryset().for_owner(owner)


class DocumentManager(OwnerManager):

    def get_queryset(self):
        return DocumentQuerySet(self.model, using=self._db)

    def non_templates(self):
        return self.get_queryset().non_templates()


class ScheduleManager(OwnerManager):

    def get_queryset(self):
        return ScheduleQuerySet(self.model, using=self._db)

    def active(self):
        return self.get_queryset().active()

    def due(self, reference_date):
        return self.get_queryset().due(reference_date)
