from hbondlab.bridges import SolventBridgeTracker, SolventContacts, bridge_key


def test_bridge_key_order_independent():
    assert bridge_key([7, 3]) == bridge_key({3, 7}) == (3, 7)
    assert bridge_key([3, 7, 3]) == (3, 7)


def test_superset_is_a_distinct_bridge():
    tracker = SolventBridgeTracker()
    tracker.update({0: {3, 7}})
    tracker.update({0: {3, 7, 9}})
    tracker.update({1: {7, 3}})
    assert tracker.count([3, 7]) == 2
    assert tracker.count([3, 7, 9]) == 1
    assert len(tracker) == 2


def test_single_residue_is_not_a_bridge():
    contacts = SolventContacts()
    contacts.touch(4, 2)
    contacts.touch(4, 2)
    contacts.touch(5, 1)
    tracker = SolventBridgeTracker()
    assert tracker.update(contacts) == 0
    assert len(tracker) == 0


def test_solvent_molecule_bridging_over_two_frames():
    tracker = SolventBridgeTracker()
    frame0 = SolventContacts()
    frame0.touch(9, 2)
    assert tracker.update(frame0) == 0
    assert tracker.count([2, 5]) == 0

    frame1 = SolventContacts()
    frame1.touch(9, 2)
    frame1.touch(9, 5)
    assert tracker.update(frame1) == 1
    assert tracker.count([2, 5]) == 1


def test_two_molecules_same_residues_count_each():
    contacts = SolventContacts()
    for mol in (1, 2):
        contacts.touch(mol, 4)
        contacts.touch(mol, 8)
    tracker = SolventBridgeTracker()
    assert tracker.update(contacts) == 2
    assert tracker.count([4, 8]) == 2


def test_drain_empties():
    tracker = SolventBridgeTracker()
    tracker.update({0: {1, 2}, 1: {1, 2, 3}, 2: {1, 2}})
    assert tracker.drain() == [((1, 2), 2), ((1, 2, 3), 1)]
    assert tracker.drain() == []
