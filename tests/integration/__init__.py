"""
Integration Tests Package for SmartPark

Integration tests focus on:
1. The ParkingLot facade built end to end by ParkingLotBuilder
2. Concurrent park/exit traffic against one coordinator
3. The console commands
"""
