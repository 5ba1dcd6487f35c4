"""
Rebuilding the system tag trees while keeping error item associations.

The rebuild runs in three phases, all inside a single database transaction::

    take_snapshot() -> [delete_system_tags() + seed_subject()] per subject -> restore_associations()

The snapshot records every error item <-> system tag link by the tag's
``(name, subject)`` pair, because tag IDs do not survive the rebuild. The
restore phase joins the snapshot back onto the freshly seeded tags using that
pair, and promotes anything that can no longer be found to a custom tag owned
by the user running the rebuild.

Use ``rebuild.api.start_rebuild()`` from views and commands; it records the
run in a ``TagRebuildTask`` and refuses to start while another rebuild is
running.
"""
