"""NetProbe Test Suite

Test modules:
    test_port_parser    — port spec grammar, keywords, error messages
    test_target_parser  — CIDR, last-octet ranges, comma lists
    test_fingerprint    — banner signatures, port table, OS heuristic
    test_config         — ScanConfig validation, timing presets, YAML loading
    test_scanner        — probe executor against local listeners, scheduler
                          bound/ordering/isolation, stealth, network scans,
                          TCP ping and host discovery
    test_aggregator     — host filtering and summary statistics
    test_reporting      — text, JSON and CSV output, report files
    test_dashboard      — Flask endpoints with the scheduler faked out
    test_cli            — argument parsing and exit codes
    test_layering       — static import analysis enforcing package layering

Run all tests:
    pytest tests/ -v
"""
